from diga.models import TransactionType
from diga.utils.formatting import formatar_moeda, formatar_percentual

LIMIT_WARNING_PERCENT = 85.0


def compute_balance(profile, transactions):
    """Monthly income plus recorded income minus recorded expenses."""
    income = sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
    expenses = sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)
    return (profile.monthly_income + income) - expenses


def limit_usage(profile, transactions):
    out = []
    for limit in profile.budget_limits:
        key = limit.category.strip().lower()
        spent = sum(
            t.amount for t in transactions
            if t.type == TransactionType.EXPENSE and t.category.strip().lower() == key
        )
        percent = (spent / limit.amount) * 100 if limit.amount > 0 else 0.0
        if percent > 100:
            status = "estourado"
        elif percent > LIMIT_WARNING_PERCENT:
            status = "alerta"
        else:
            status = "ok"
        out.append({
            "id": limit.id,
            "categoria": limit.category,
            "limite": limit.amount,
            "gasto": round(spent, 2),
            "percentual": round(percent, 1),
            "status": status,
            "resumo": f"{formatar_moeda(spent)} de {formatar_moeda(limit.amount)} ({formatar_percentual(min(percent, 100.0))})",
        })
    return out


def goals_summary(profile):
    return [
        {
            "id": g.id,
            "nome": g.name,
            "alvo": g.target_amount,
            "atual": g.current_amount,
            "progresso": round(g.progress, 4),
            "parcela_mensal": g.monthly_plan_amount,
            "prazo": g.deadline.isoformat() if g.deadline else None,
            "imagem": g.image_url,
        }
        for g in profile.savings_goals
    ]
