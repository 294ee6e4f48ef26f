import logging
import re
import unicodedata

from diga.constants.categories import (
    CATEGORY_KEYWORDS,
    DEFAULT_CATEGORY,
    GENERIC_LIMIT_CATEGORY,
    INCOME_CATEGORY,
)
from diga.constants.prompts import OFFLINE_GOAL_HELP, OFFLINE_HELP, OFFLINE_PREFIX
from diga.models import TransactionType
from diga.schemas import (
    BudgetCheck,
    BudgetLimitRequest,
    ChatResponse,
    ExtractedTransaction,
    GoalContributionRequest,
    GoalCreation,
    GoalDeposit,
    LimitRequest,
    NewGoal,
    TransactionProposal,
)
from diga.utils.dates import today_sp
from diga.utils.formatting import capitalizar, formatar_moeda

logger = logging.getLogger(__name__)

TYPO_MAP = {
    'gnahei': 'ganhei',
    'gnhei': 'ganhei',
    'gnh': 'ganhei',
    'gnahe': 'ganhei',
    'ganhe': 'ganhei',
    'vnedi': 'vendi',
    'vendy': 'vendi',
    'gostei': 'gastei',
    'gaste': 'gastei',
    'gastai': 'gastei',
    'gasti': 'gastei',
    'gaxtei': 'gastei',
    'pagei': 'paguei',
    'pague': 'paguei',
    'conprei': 'comprei',
    'comprie': 'comprei',
    'recbi': 'recebi',
    'receby': 'recebi',
    'guradei': 'guardei',
    'gaurdei': 'guardei',
}

BALANCE_KEYWORDS = ['saldo', 'quanto tenho', 'sobrou', 'meu caixa', 'extrato', 'resumo', 'situacao', 'posso gastar']
LIMIT_KEYWORDS = ['limite', 'teto', 'maximo', 'orcamento']
GOAL_KEYWORDS = ['meta', 'sonho', 'objetivo', 'juntar', 'comprar carro', 'comprar casa']
SAVINGS_KEYWORDS = ['guardei', 'investi', 'apliquei', 'poupanca', 'reservado', 'reservei', 'cofre', 'fundo']
INCOME_KEYWORDS = [
    'ganhei', 'ganho', 'recebi', 'recebo', 'caiu', 'entrou', 'pingou', 'salario', 'pagamento', 'deposito',
    'lucro', 'bico', 'freela', 'venda', 'vendi', 'reembolso', 'pix recebido',
]
RECURRENCE_MARKERS = ['mensal', 'mensalmente', 'assinatura', 'todo mes', 'fixo', 'fixa', 'recorrente']

STOP_WORDS = [
    'no', 'na', 'nos', 'nas', 'em', 'com', 'pro', 'pra', 'para', 'de', 'do', 'da', 'dos', 'das',
    'o', 'a', 'os', 'as', 'um', 'uma', 'meu', 'minha', 'gastei', 'comprei', 'paguei', 'fiz',
    'recebi', 'ganhei', 'foi', 'custou', 'valor', 'reais', 'real', 'criar', 'novo', 'nova',
]

# Words removed from the label of each intent before stop words.
LIMIT_STRIP = ['limite', 'teto', 'maximo', 'orcamento', 'definir', 'defina', 'para', 'gastos', 'gasto']
GOAL_STRIP = ['meta', 'sonho', 'objetivo', 'juntar', 'para', 'quero', 'comprar', 'criar', 'novo', 'nova']
SAVINGS_STRIP = ['guardei', 'investi', 'apliquei', 'reservei', 'para', 'na']
INCOME_STRIP = INCOME_KEYWORDS + ['pix', 'recebido']
EXPENSE_STRIP = ['gastei', 'comprei', 'paguei', 'pix', 'transferi', 'foi', 'para', 'no', 'na']

_ACCENT_CLASSES = {
    'a': '[aáàâãä]',
    'e': '[eéèêë]',
    'i': '[iíìîï]',
    'o': '[oóòôõö]',
    'u': '[uúùûü]',
    'c': '[cç]',
}

K_AMOUNT = re.compile(r'(\d+(?:[.,]\d+)?)k', re.IGNORECASE)
AMOUNT_TOKEN = re.compile(
    r'(?:r\$)?\s*(\d{1,3}(?:\.\d{3})+(?!\d)(?:,\d{1,2})?|\d+(?:[.,]\d{1,2})?)'
    r'(?:\s*(milh(?:[aã]o|[oõ]es)|mil)(?!\w))?',
    re.IGNORECASE,
)
GROUPED_NUMBER = re.compile(r'\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?')


def normalize_text(text):
    """Lower-case and strip diacritics, for keyword matching only."""
    t = unicodedata.normalize('NFD', (text or '').lower())
    return ''.join(c for c in t if not unicodedata.combining(c))


def fix_typos(text):
    return re.sub(r'\w+', lambda m: TYPO_MAP.get(m.group(0).lower(), m.group(0)), text or '')


def _accent_insensitive(word):
    out = []
    for ch in word:
        if ch in _ACCENT_CLASSES:
            out.append(_ACCENT_CLASSES[ch])
        elif ch == ' ':
            out.append(r'\s+')
        else:
            out.append(re.escape(ch))
    return ''.join(out)


def _word_regex(words, plural=False):
    alts = '|'.join(_accent_insensitive(w) for w in sorted(set(words), key=len, reverse=True))
    suffix = r'(?:s|es)?' if plural else ''
    return re.compile(r'(?<!\w)(?:' + alts + r')' + suffix + r'(?!\w)', re.IGNORECASE)


_BALANCE_RE = _word_regex(BALANCE_KEYWORDS)
_LIMIT_RE = _word_regex(LIMIT_KEYWORDS, plural=True)
_GOAL_RE = _word_regex(GOAL_KEYWORDS, plural=True)
_SAVINGS_RE = _word_regex(SAVINGS_KEYWORDS)
_INCOME_RE = _word_regex(INCOME_KEYWORDS, plural=True)
_RECURRENCE_RE = _word_regex(RECURRENCE_MARKERS)
_STOP_WORDS_RE = _word_regex(STOP_WORDS)
_PIX_RE = re.compile(r'(?<!\w)pix(?!\w)')
_PIX_ORIGIN_RE = re.compile(r'(?<!\w)d[eo](?!\w)')


def _parse_number(raw):
    s = raw.strip()
    if GROUPED_NUMBER.fullmatch(s):
        s = s.replace('.', '').replace(',', '.')
    else:
        s = s.replace(',', '.')
    return float(s)


def _match_amount(text):
    t = text or ''
    m = K_AMOUNT.search(t)
    if m:
        return float(m.group(1).replace(',', '.')) * 1000, m
    m = AMOUNT_TOKEN.search(t)
    if m:
        value = _parse_number(m.group(1))
        multiplier = (m.group(2) or '').lower()
        if multiplier.startswith('milh'):
            value *= 1000000
        elif multiplier == 'mil':
            value *= 1000
        return value, m
    return 0.0, None


def extract_amount(text):
    """Monetary value found in ``text``, or 0.0 when there is none.

    ``30k`` shorthand wins over everything else; otherwise the leftmost
    number is taken, with an optional ``R$`` prefix, comma or period decimals
    and a spelled ``mil``/``milhões`` multiplier.
    """
    value, _ = _match_amount(text)
    return round(value, 2)


def detect_category(text):
    t = normalize_text(text)
    for cat, keywords in CATEGORY_KEYWORDS:
        if any(kw in t for kw in keywords):
            return cat
    return DEFAULT_CATEGORY


def is_recurring(text):
    return bool(_RECURRENCE_RE.search(normalize_text(text)))


def extract_description(raw_text, intent_keywords=()):
    desc = raw_text or ''
    _, m = _match_amount(desc)
    if m:
        desc = desc[:m.start()] + ' ' + desc[m.end():]
    desc = re.sub(r'r\$', ' ', desc, flags=re.IGNORECASE)
    if intent_keywords:
        desc = _word_regex(intent_keywords).sub(' ', desc)
    desc = _STOP_WORDS_RE.sub(' ', desc)
    desc = _RECURRENCE_RE.sub(' ', desc)
    desc = re.sub(r'\s+', ' ', desc).strip(' .,;:!?+-')
    if len(desc) < 2:
        return ''
    return capitalizar(desc)


def _money(value):
    return formatar_moeda(round(value, 2))


def _is_income(clean, raw):
    if _INCOME_RE.search(clean):
        return True
    if _PIX_RE.search(clean) and _PIX_ORIGIN_RE.search(clean):
        return True
    return '+' in raw


def _resolve(raw_text, balance):
    text = fix_typos(raw_text)
    clean = normalize_text(text)
    amount = extract_amount(text)

    if _BALANCE_RE.search(clean):
        status = 'safe' if balance > 0 else 'danger'
        return BudgetCheck(
            response_text=(
                f"{OFFLINE_PREFIX} Pelo que calculei aqui, seu saldo atual é de **{_money(balance)}**. "
                + ('Está positivo!' if status == 'safe' else 'Atenção aos gastos!')
            ),
            budget_analysis=status,
        )

    if _LIMIT_RE.search(clean) and amount > 0:
        category = detect_category(clean)
        if category == DEFAULT_CATEGORY:
            category = extract_description(text, LIMIT_STRIP) or GENERIC_LIMIT_CATEGORY
        return BudgetLimitRequest(
            response_text=f"{OFFLINE_PREFIX} Definindo limite de {_money(amount)} para **{category}**. Te avisarei se passar disso!",
            set_limit=LimitRequest(category=category, amount=amount),
        )

    is_saving = bool(_SAVINGS_RE.search(clean))
    if _GOAL_RE.search(clean) and not is_saving:
        if amount <= 0:
            return ChatResponse(response_text=OFFLINE_GOAL_HELP)
        name = extract_description(text, GOAL_STRIP) or 'Novo Objetivo'
        return GoalCreation(
            response_text=f'{OFFLINE_PREFIX} Legal! Criei a meta **"{name}"** com valor de {_money(amount)}.',
            new_goal=NewGoal(name=name, target_amount=amount, planned_months=12),
        )

    if is_saving and amount > 0:
        goal_name = extract_description(text, SAVINGS_STRIP) or 'Economias'
        return GoalContributionRequest(
            response_text=f'{OFFLINE_PREFIX} Ótimo hábito! Registrei {_money(amount)} guardados em **"{goal_name}"**.',
            add_to_goal=GoalDeposit(goal_name=goal_name, amount=amount),
        )

    if amount > 0 and _is_income(clean, text):
        desc = extract_description(text, INCOME_STRIP) or 'Renda Extra'
        return TransactionProposal(
            response_text=f"{OFFLINE_PREFIX} Oba! Entrada de **{_money(amount)}** detectada. Descrição: {desc}.",
            extracted_transaction=ExtractedTransaction(
                type=TransactionType.INCOME,
                amount=amount,
                category=INCOME_CATEGORY,
                date=today_sp(),
                description=desc,
                is_recurring=bool(re.search(r'(?<!\w)(?:mensal|todo mes)(?!\w)', clean)),
            ),
        )

    if amount > 0:
        category = detect_category(clean)
        desc = extract_description(text, EXPENSE_STRIP)
        final_desc = desc or (category if category != DEFAULT_CATEGORY else 'Despesa Avulsa')
        return TransactionProposal(
            response_text=(
                f"{OFFLINE_PREFIX} Entendi. Gasto de **{_money(amount)}** em {final_desc}. \n"
                f"Classifiquei como: **{category}**."
            ),
            extracted_transaction=ExtractedTransaction(
                type=TransactionType.EXPENSE,
                amount=amount,
                category=category,
                date=today_sp(),
                description=final_desc,
                is_recurring=is_recurring(clean),
            ),
        )

    return ChatResponse(response_text=OFFLINE_HELP)


def resolve_intent(raw_text, current_balance=0.0):
    """Offline, deterministic intent classification.

    Rules are evaluated in priority order (balance, limit, goal,
    savings, income, expense, help) and the first match wins. Never raises:
    any internal failure degrades to the help message.
    """
    try:
        return _resolve(raw_text or '', float(current_balance or 0))
    except Exception:
        logger.exception("[resolve_intent] falha no parser local")
        return ChatResponse(response_text=OFFLINE_HELP)
