import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from diga.constants.categories import SAVINGS_CATEGORY
from diga.constants.prompts import (
    CANCELLED_SUFFIX,
    CONFIRMED_SUFFIX,
    DEFAULT_QUOTE,
    ERROR_MESSAGE,
    OFFLINE_PREFIX,
    WELCOME_MESSAGE,
)
from diga.models import (
    BudgetLimit,
    ChatMessage,
    DailyQuote,
    DraftTransaction,
    GoalContribution,
    SavingsGoal,
    Transaction,
    TransactionType,
    UserProfile,
)
from diga.schemas import Intent
from diga.services.finance import compute_balance
from diga.utils.dates import add_months, now_ms, now_sp, today_sp
from diga.utils.formatting import formatar_moeda

logger = logging.getLogger(__name__)


def _new_id():
    return uuid.uuid4().hex


@dataclass
class PendingWrite:
    action: str
    fn: object
    args: tuple = field(default_factory=tuple)


class ConversationOrchestrator:
    """One account's conversation: history, transactions and profile.

    In-memory state is the source of truth for the session and is updated
    before the store. A failed write is logged and kept in ``unsynced`` so
    ``retry_unsynced`` can replay it; it never rolls back local state.
    """

    def __init__(self, store, gateway, client=None, executor=None):
        self.store = store
        self.gateway = gateway
        self.client = client
        self.messages = []
        self.transactions = []
        self.profile = UserProfile()
        self.unsynced = []
        self._lock = threading.RLock()
        self._last_ts = 0
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="diga-bg")

    # -- persistence -------------------------------------------------------

    def _persist(self, action, fn, *args):
        try:
            fn(*args)
            return True
        except Exception:
            logger.exception("[persistencia] falha em %s (conta %s); pendente de sincronização",
                             action, self.store.account_id)
            with self._lock:
                self.unsynced.append(PendingWrite(action, fn, args))
            return False

    def _persist_later(self, action, fn, *args):
        self._executor.submit(self._persist, action, fn, *args)

    def retry_unsynced(self):
        """Replay failed writes; returns how many are still pending."""
        with self._lock:
            pending, self.unsynced = self.unsynced, []
        for write in pending:
            self._persist(write.action, write.fn, *write.args)
        with self._lock:
            return len(self.unsynced)

    # -- state -------------------------------------------------------------

    @property
    def balance(self):
        with self._lock:
            return compute_balance(self.profile, self.transactions)

    def _timestamp(self):
        with self._lock:
            self._last_ts = max(now_ms(), self._last_ts + 1)
            return self._last_ts

    def _message(self, sender, text):
        return ChatMessage(id=_new_id(), sender=sender, text=text, timestamp=self._timestamp())

    def _append(self, msg):
        with self._lock:
            self.messages.append(msg)
            snapshot = msg.model_copy(deep=True)
        self._persist_later("mensagem", self.store.save_message, snapshot)

    def find_message(self, message_id):
        with self._lock:
            for msg in self.messages:
                if msg.id == message_id:
                    return msg
        return None

    def _find_goal_by_id(self, goal_id):
        for goal in self.profile.savings_goals:
            if goal.id == goal_id:
                return goal
        return None

    def load(self):
        try:
            transactions = self.store.list_transactions()
            profile = self.store.get_profile()
            history = self.store.list_messages()
        except Exception:
            logger.exception("[load] falha ao carregar dados da conta %s", self.store.account_id)
            return False
        with self._lock:
            self.transactions = transactions
            self.profile = profile
            self.messages = history
        if not profile.has_onboarded and not history:
            self._append(self._message("assistant", WELCOME_MESSAGE))
        self._refresh_daily_quote()
        return True

    def _refresh_daily_quote(self):
        today = today_sp()
        quote = self.profile.daily_quote
        if quote is not None and quote.date == today:
            return
        if self.client is None:
            self._store_daily_quote(DEFAULT_QUOTE, today)
            return
        self._executor.submit(self._fetch_daily_quote, today)

    def _fetch_daily_quote(self, day):
        self._store_daily_quote(self.client.daily_quote(), day)

    def _store_daily_quote(self, text, day):
        with self._lock:
            self.profile.daily_quote = DailyQuote(text=text, date=day)
        self._persist("frase do dia", self.store.update_daily_quote, text, day)

    # -- conversation ------------------------------------------------------

    def send_message(self, text):
        text = (text or "").strip()
        if not text:
            return None
        with self._lock:
            history = [m.history_line() for m in self.messages]
            profile = self.profile.model_copy(deep=True)
            transactions = list(self.transactions)
        self._append(self._message("user", text))
        try:
            response = self.gateway.resolve(text, history, profile, transactions)
            reply = self._apply(response)
        except Exception:
            logger.exception("[send_message] falha ao processar mensagem")
            reply = self._message("assistant", ERROR_MESSAGE)
        self._append(reply)
        return reply

    def _apply(self, response):
        msg = self._message("assistant", response.response_text)
        intent = response.intent
        if intent == Intent.TRANSACTION_PROPOSAL:
            self._stage_transaction(msg, response.extracted_transaction)
        elif intent == Intent.CREATE_GOAL:
            self._create_or_update_goal(msg, response.new_goal)
        elif intent == Intent.ADD_TO_GOAL:
            self._stage_contribution(msg, response.add_to_goal)
        elif intent == Intent.UPDATE_GOAL_PLAN:
            self._update_goal_plan(msg, response.goal_plan)
        elif intent == Intent.UPDATE_INCOME:
            self.update_income(response.new_income.monthly_income)
        elif intent == Intent.SET_BUDGET_LIMIT:
            self._set_limit(msg, response.set_limit)
        return msg

    @staticmethod
    def _prefix(msg):
        return f"{OFFLINE_PREFIX} " if msg.text.startswith(OFFLINE_PREFIX) else ""

    @staticmethod
    def _apply_plan(goal, months):
        goal.monthly_plan_amount = goal.target_amount / months
        goal.deadline = add_months(now_sp(), months)

    def _stage_transaction(self, msg, tx):
        if tx.amount <= 0:
            msg.text += "\n\nNão encontrei um valor válido. Pode repetir informando o valor?"
            return
        msg.is_draft = True
        msg.draft_data = DraftTransaction(
            type=tx.type,
            amount=tx.amount,
            category=tx.category,
            date=tx.date or today_sp(),
            description=tx.description,
            is_recurring=tx.is_recurring,
        )

    def _stage_contribution(self, msg, deposit):
        if deposit.amount <= 0:
            msg.text += "\n\nNão encontrei um valor válido. Pode repetir informando o valor?"
            return
        msg.is_draft = True
        msg.draft_data = DraftTransaction(
            type=TransactionType.EXPENSE,
            amount=deposit.amount,
            category=SAVINGS_CATEGORY,
            date=today_sp(),
            description=f"Economia para: {deposit.goal_name}",
            is_recurring=False,
        )
        msg.goal_data = GoalContribution(goal_name=deposit.goal_name, amount=deposit.amount)
        msg.text = (
            f"{self._prefix(msg)}Entendi! Você guardou {formatar_moeda(deposit.amount)} "
            f'para "{deposit.goal_name}". Confirma?'
        )

    def _create_or_update_goal(self, msg, new_goal):
        target = float(new_goal.target_amount or 0)
        months = int(new_goal.planned_months or 0)
        with self._lock:
            existing = self.profile.find_goal(new_goal.name)
            if existing is None and target <= 0:
                return
            if existing is not None:
                if target > 0:
                    existing.target_amount = target
                if months > 0:
                    self._apply_plan(existing, months)
                    msg.text += "\n\n(Atualizei os detalhes da sua meta!)"
                snapshot = existing.model_copy(deep=True)
                created = None
            else:
                created = SavingsGoal(id=_new_id(), name=new_goal.name.strip(), target_amount=target, current_amount=0.0)
                if months > 0:
                    self._apply_plan(created, months)
                    msg.text += (
                        f"\n\nJá preparei o plano: guarde {formatar_moeda(created.monthly_plan_amount)} "
                        f"por mês durante {months} meses."
                    )
                self.profile.savings_goals.append(created)
                snapshot = created.model_copy(deep=True)
        if created is None:
            self._persist("meta", self.store.update_goal, snapshot)
            return
        self._persist("meta", self.store.insert_goal, snapshot)
        self._request_goal_image(created.id, created.name)

    def _request_goal_image(self, goal_id, name):
        if self.client is None:
            return
        self._executor.submit(self._attach_goal_image, goal_id, name)

    def _attach_goal_image(self, goal_id, name):
        try:
            image = self.client.generate_goal_image(name)
        except Exception:
            logger.warning("[meta] ilustração indisponível para %r", name, exc_info=True)
            return
        if not image:
            return
        with self._lock:
            goal = self._find_goal_by_id(goal_id)
            if goal is None:
                return
            goal.image_url = image
            snapshot = goal.model_copy(deep=True)
        self._persist("imagem da meta", self.store.update_goal, snapshot)

    def _update_goal_plan(self, msg, plan):
        months = int(plan.months or 0)
        with self._lock:
            if plan.goal_name:
                goal = self.profile.find_goal(plan.goal_name)
            else:
                goal = self.profile.savings_goals[-1] if self.profile.savings_goals else None
            if goal is None:
                msg.text += "\n\nNão encontrei essa meta. Crie-a primeiro dizendo o nome e o valor."
                return
            if plan.amount and plan.amount > 0:
                goal.target_amount = float(plan.amount)
            if months > 0:
                self._apply_plan(goal, months)
                msg.text += (
                    f"\n\nPlano atualizado: guarde {formatar_moeda(goal.monthly_plan_amount)} "
                    f"por mês durante {months} meses."
                )
            snapshot = goal.model_copy(deep=True)
        self._persist("meta", self.store.update_goal, snapshot)

    def _set_limit(self, msg, request):
        if request.amount <= 0:
            msg.text += "\n\nO limite precisa ter um valor maior que zero."
            return
        category = request.category.strip()
        with self._lock:
            existing = self.profile.find_limit(category)
            if existing is not None:
                existing.amount = float(request.amount)
                snapshot = existing.model_copy(deep=True)
                write = self.store.update_limit
            else:
                snapshot = BudgetLimit(id=_new_id(), category=category, amount=float(request.amount))
                self.profile.budget_limits.append(snapshot.model_copy(deep=True))
                write = self.store.insert_limit
        self._persist("limite", write, snapshot)
        msg.text = (
            f"{self._prefix(msg)}Defini um limite de {formatar_moeda(request.amount)} "
            f'para a categoria "{snapshot.category}".'
        )

    # -- drafts ------------------------------------------------------------

    def confirm_draft(self, message_id, confirmed):
        """Resolve a pending draft. Returns False when nothing changed.

        A draft moves from pending to confirmed (transaction written, linked
        goal incremented) or to cancelled. Resolving an already resolved
        message is a no-op.
        """
        tx = None
        goal_write = None
        with self._lock:
            msg = self.find_message(message_id)
            if msg is None or not msg.is_draft:
                return False
            draft = msg.draft_data
            if confirmed and (draft is None or draft.type is None or not draft.amount or draft.amount <= 0):
                logger.warning("[confirm_draft] rascunho %s sem dados válidos; cancelado", message_id)
                confirmed = False
            if confirmed:
                tx = Transaction(
                    id=_new_id(),
                    type=draft.type,
                    amount=float(draft.amount),
                    category=draft.category or "Geral",
                    date=draft.date or today_sp(),
                    description=draft.description or "Sem descrição",
                    is_recurring=bool(draft.is_recurring),
                )
                self.transactions.append(tx)
                if msg.goal_data is not None:
                    goal_write = self._credit_goal(msg.goal_data)
                msg.text += CONFIRMED_SUFFIX
            else:
                msg.text += CANCELLED_SUFFIX
            msg.is_draft = False
            msg_snapshot = msg.model_copy(deep=True)
        if tx is not None:
            self._persist("transação", self.store.insert_transaction, tx.model_copy(deep=True))
        if goal_write is not None:
            self._persist("meta", *goal_write)
        self._persist_later("mensagem", self.store.save_message, msg_snapshot)
        return True

    def _credit_goal(self, contribution):
        goal = self.profile.find_goal(contribution.goal_name)
        if goal is not None:
            goal.current_amount += contribution.amount
            return self.store.update_goal, goal.model_copy(deep=True)
        # First contribution to an unknown goal creates it.
        goal = SavingsGoal(
            id=_new_id(),
            name=contribution.goal_name,
            target_amount=contribution.amount,
            current_amount=contribution.amount,
        )
        self.profile.savings_goals.append(goal)
        return self.store.insert_goal, goal.model_copy(deep=True)

    # -- manual edits ------------------------------------------------------

    def update_income(self, monthly_income):
        value = max(0.0, float(monthly_income or 0))
        with self._lock:
            self.profile.monthly_income = value
            self.profile.has_onboarded = True
        self._persist("renda", self.store.update_income, value)

    def update_preferences(self, preferences):
        with self._lock:
            self.profile.preferences = preferences
        self._persist("preferências", self.store.update_preferences, preferences)

    def remove_transaction(self, tx_id):
        with self._lock:
            self.transactions = [t for t in self.transactions if t.id != tx_id]
        self._persist("transação", self.store.delete_transaction, tx_id)

    def modify_transaction(self, tx):
        with self._lock:
            self.transactions = [tx if t.id == tx.id else t for t in self.transactions]
        self._persist("transação", self.store.update_transaction, tx)

    def remove_goal(self, goal_id):
        with self._lock:
            self.profile.savings_goals = [g for g in self.profile.savings_goals if g.id != goal_id]
        self._persist("meta", self.store.delete_goal, goal_id)

    def modify_goal(self, goal):
        with self._lock:
            exists = self._find_goal_by_id(goal.id) is not None
            if exists:
                self.profile.savings_goals = [goal if g.id == goal.id else g for g in self.profile.savings_goals]
            else:
                self.profile.savings_goals.append(goal)
        self._persist("meta", self.store.update_goal if exists else self.store.insert_goal, goal)

    def remove_limit(self, limit_id):
        with self._lock:
            self.profile.budget_limits = [l for l in self.profile.budget_limits if l.id != limit_id]
        self._persist("limite", self.store.delete_limit, limit_id)

    def modify_limit(self, limit):
        """Edit a limit by id, or overwrite the one already set for its category."""
        duplicate = None
        with self._lock:
            existing = next((l for l in self.profile.budget_limits if limit.id and l.id == limit.id), None)
            if existing is None:
                existing = self.profile.find_limit(limit.category)
            else:
                same = self.profile.find_limit(limit.category)
                duplicate = same if same is not None and same.id != existing.id else None
            if existing is not None:
                limit = limit.model_copy(update={"id": existing.id})
                if limit.category.strip().lower() == existing.category.strip().lower():
                    limit.category = existing.category
                self.profile.budget_limits = [limit if l.id == existing.id else l for l in self.profile.budget_limits]
                if duplicate is not None:
                    self.profile.budget_limits.remove(duplicate)
                write = self.store.update_limit
            else:
                if not limit.id:
                    limit = limit.model_copy(update={"id": _new_id()})
                self.profile.budget_limits.append(limit)
                write = self.store.insert_limit
            snapshot = limit.model_copy(deep=True)
        self._persist("limite", write, snapshot)
        if duplicate is not None:
            self._persist("limite", self.store.delete_limit, duplicate.id)
        return limit

    def reset(self):
        with self._lock:
            self.unsynced = []
            self.transactions = []
            self.profile = UserProfile()
            self.messages = []
        if not self._persist("limpeza", self.store.clear_all):
            # The store still holds the old data; keep the wipe queued and do not reload it.
            self._append(self._message("assistant", WELCOME_MESSAGE))
            return False
        return self.load()

    def close(self):
        self._executor.shutdown(wait=False)
