"""Offline intent resolution: amounts, categories, descriptions and rule order."""

import pytest

from diga.constants.prompts import OFFLINE_GOAL_HELP, OFFLINE_HELP, OFFLINE_PREFIX
from diga.models import TransactionType
from diga.schemas import Intent
from diga.services.rule_based import (
    detect_category,
    extract_amount,
    extract_description,
    fix_typos,
    is_recurring,
    normalize_text,
    resolve_intent,
)


# ---------------------------------------------------------------------------
# Normalizer / amounts
# ---------------------------------------------------------------------------


def test_normalize_text_strips_accents_and_case():
    assert normalize_text("Açaí na PRAÇA, São João") == "acai na praca, sao joao"


def test_fix_typos_rewrites_known_misspellings():
    assert fix_typos("gostei 20 no bar") == "gastei 20 no bar"
    assert fix_typos("Recbi 10") == "recebi 10"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("R$ 50", 50.0),
        ("50,50", 50.5),
        ("50.5", 50.5),
        ("1k", 1000.0),
        ("1,5k", 1500.0),
        ("Meta Carro 50k", 50000.0),
        ("paguei 1.500 de aluguel", 1500.0),
        ("1.234,56 no cartão", 1234.56),
        ("quero juntar 5 mil", 5000.0),
        ("sonho de 2 milhões", 2000000.0),
        ("comprei 30kg de ração", 30000.0),
        ("sem valor aqui", 0.0),
    ],
)
def test_extract_amount(text, expected):
    assert extract_amount(text) == pytest.approx(expected)


# ---------------------------------------------------------------------------
# Categories / descriptions
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "text, expected",
    [
        ("padaria", "Alimentação"),
        ("uber pro trabalho", "Transporte"),
        ("conta de luz", "Casa"),
        ("farmácia", "Saúde"),
        ("netflix", "Lazer"),
        ("mensalidade da faculdade", "Educação"),
        ("tênis novo", "Vestuário"),
        ("corte de cabelo", "Serviços"),
        ("ração do gato", "Pets"),
        ("coisa aleatória", "Outros"),
    ],
)
def test_detect_category(text, expected):
    assert detect_category(text) == expected


def test_detect_category_matches_inside_words():
    assert detect_category("cafezinho") == "Alimentação"
    assert detect_category("hamburgueria") == "Alimentação"


def test_detect_category_ignores_common_verbs():
    assert detect_category("gastei com presente") == "Outros"


def test_detect_category_first_match_wins():
    # Food is checked before transport.
    assert detect_category("ifood de carro") == "Alimentação"


def test_is_recurring():
    assert is_recurring("Assinatura Netflix")
    assert is_recurring("aluguel mensal")
    assert not is_recurring("almoço")


def test_extract_description_keeps_accents():
    assert extract_description("Gastei 30 no açougue", ["gastei", "no"]) == "Açougue"


def test_extract_description_empty_when_only_noise():
    assert extract_description("gastei 50 reais", ["gastei"]) == ""


# ---------------------------------------------------------------------------
# Rule order / intents
# ---------------------------------------------------------------------------


def test_expense_at_bakery():
    r = resolve_intent("Gastei 50 reais na padaria", 1000)
    assert r.intent == Intent.TRANSACTION_PROPOSAL
    tx = r.extracted_transaction
    assert tx.type == TransactionType.EXPENSE
    assert tx.amount == 50.0
    assert tx.category == "Alimentação"
    assert tx.description == "Padaria"
    assert tx.date is not None
    assert r.response_text.startswith(OFFLINE_PREFIX)


def test_income_from_freelance():
    r = resolve_intent("Recebi 200 de freela")
    assert r.intent == Intent.TRANSACTION_PROPOSAL
    tx = r.extracted_transaction
    assert tx.type == TransactionType.INCOME
    assert tx.category == "Renda"
    assert tx.description == "Renda Extra"
    assert tx.amount == 200.0


def test_pix_from_someone_is_income():
    r = resolve_intent("pix de 80 do Carlos")
    assert r.extracted_transaction.type == TransactionType.INCOME
    assert r.extracted_transaction.description == "Carlos"


def test_any_pix_with_origin_is_income():
    r = resolve_intent("Mandei pix de 50 pro joao")
    assert r.intent == Intent.TRANSACTION_PROPOSAL
    assert r.extracted_transaction.type == TransactionType.INCOME
    assert r.extracted_transaction.category == "Renda"


def test_plus_sign_marks_income():
    r = resolve_intent("+150 bico")
    assert r.extracted_transaction.type == TransactionType.INCOME


def test_subscription_is_recurring_leisure():
    r = resolve_intent("Assinatura Netflix 40")
    tx = r.extracted_transaction
    assert tx.category == "Lazer"
    assert tx.description == "Netflix"
    assert tx.is_recurring is True


def test_expense_without_description_uses_category():
    r = resolve_intent("Mercado 300")
    tx = r.extracted_transaction
    assert tx.category == "Alimentação"
    assert tx.description == "Mercado"


def test_expense_without_any_label():
    r = resolve_intent("gastei 25")
    assert r.extracted_transaction.description == "Despesa Avulsa"
    assert r.extracted_transaction.category == "Outros"


def test_savings_goes_to_goal():
    r = resolve_intent("guardei 200 para a viagem")
    assert r.intent == Intent.ADD_TO_GOAL
    assert r.add_to_goal.goal_name == "Viagem"
    assert r.add_to_goal.amount == 200.0


def test_savings_without_name_uses_default_goal():
    r = resolve_intent("guardei 100")
    assert r.add_to_goal.goal_name == "Economias"


def test_balance_question_reports_danger_when_empty():
    r = resolve_intent("Quanto tenho?", 0)
    assert r.intent == Intent.CHECK_BUDGET
    assert r.budget_analysis == "danger"
    assert "R$ 0,00" in r.response_text


def test_balance_question_reports_safe_when_positive():
    r = resolve_intent("qual meu saldo", 1234.5)
    assert r.budget_analysis == "safe"
    assert "R$ 1.234,50" in r.response_text


def test_balance_wins_over_amounts():
    r = resolve_intent("saldo depois de gastar 50")
    assert r.intent == Intent.CHECK_BUDGET


def test_goal_with_k_amount():
    r = resolve_intent("Meta Carro 50k")
    assert r.intent == Intent.CREATE_GOAL
    assert r.new_goal.name == "Carro"
    assert r.new_goal.target_amount == 50000.0
    assert r.new_goal.planned_months == 12


def test_goal_with_spelled_thousand():
    r = resolve_intent("Quero juntar 5 mil para viajar")
    assert r.intent == Intent.CREATE_GOAL
    assert r.new_goal.name == "Viajar"
    assert r.new_goal.target_amount == 5000.0


def test_goal_without_amount_asks_for_it():
    r = resolve_intent("quero criar uma meta")
    assert r.intent == Intent.CHAT
    assert r.response_text == OFFLINE_GOAL_HELP


def test_limit_uses_detected_category():
    r = resolve_intent("Definir limite de 600 reais para Mercado")
    assert r.intent == Intent.SET_BUDGET_LIMIT
    assert r.set_limit.category == "Alimentação"
    assert r.set_limit.amount == 600.0


def test_limit_with_unknown_category_uses_label():
    r = resolve_intent("limite de 300 para presentes")
    assert r.set_limit.category == "Presentes"


def test_limit_without_label_is_generic():
    r = resolve_intent("teto de 1000")
    assert r.set_limit.category == "Geral"


def test_salary_mention_is_income_transaction():
    r = resolve_intent("Meu salario e 5000")
    assert r.intent == Intent.TRANSACTION_PROPOSAL
    assert r.extracted_transaction.type == TransactionType.INCOME
    assert r.extracted_transaction.amount == 5000.0


def test_onboarding_income_phrase_is_income_offline():
    r = resolve_intent("Ganho 2000 por mês")
    assert r.extracted_transaction.type == TransactionType.INCOME
    assert r.extracted_transaction.amount == 2000.0


def test_unrecognised_text_gets_help():
    r = resolve_intent("oi, tudo bem?")
    assert r.intent == Intent.CHAT
    assert r.response_text == OFFLINE_HELP


def test_empty_input_gets_help():
    assert resolve_intent("").response_text == OFFLINE_HELP
    assert resolve_intent(None).response_text == OFFLINE_HELP


@pytest.mark.parametrize(
    "text",
    [
        "oi, tudo bem?",
        "quero criar uma meta",
        "gastei muito no mercado",
        "recebi um pix do Carlos",
        "guardei dinheiro",
        "limite para lazer",
        "assinatura mensal da netflix",
        "+ bico",
    ],
)
def test_text_without_digits_never_proposes_a_transaction(text):
    r = resolve_intent(text, 500)
    assert r.intent != Intent.TRANSACTION_PROPOSAL
