import json
import logging
import os
import threading
from abc import ABC, abstractmethod

import firebase_admin
from firebase_admin import credentials, firestore

from diga.config import FIREBASE_CREDENTIALS, STORE_BACKEND
from diga.models import (
    BudgetLimit,
    ChatMessage,
    DailyQuote,
    SavingsGoal,
    Transaction,
    UserPreferences,
    UserProfile,
)

logger = logging.getLogger(__name__)

TRANSACTIONS = "transacoes"
GOALS = "metas"
LIMITS = "limites"
MESSAGES = "mensagens"


class RecordStore(ABC):
    """Persistence for one account: transactions, goals, limits, profile and chat."""

    account_id = "default"

    @abstractmethod
    def list_transactions(self): ...

    @abstractmethod
    def insert_transaction(self, tx): ...

    @abstractmethod
    def update_transaction(self, tx): ...

    @abstractmethod
    def delete_transaction(self, tx_id): ...

    @abstractmethod
    def list_goals(self): ...

    @abstractmethod
    def insert_goal(self, goal): ...

    @abstractmethod
    def update_goal(self, goal): ...

    @abstractmethod
    def delete_goal(self, goal_id): ...

    @abstractmethod
    def list_limits(self): ...

    @abstractmethod
    def insert_limit(self, limit): ...

    @abstractmethod
    def update_limit(self, limit): ...

    @abstractmethod
    def delete_limit(self, limit_id): ...

    @abstractmethod
    def get_profile(self): ...

    @abstractmethod
    def update_income(self, monthly_income): ...

    @abstractmethod
    def update_preferences(self, preferences): ...

    @abstractmethod
    def update_daily_quote(self, text, day): ...

    @abstractmethod
    def list_messages(self): ...

    @abstractmethod
    def save_message(self, message): ...

    @abstractmethod
    def clear_all(self): ...


def _to_doc(model):
    return model.model_dump(mode="json", exclude={"id"}, exclude_none=True)


class MemoryStore(RecordStore):
    """Process-local store; every read returns copies so callers cannot alias stored state."""

    def __init__(self, account_id="default"):
        self.account_id = str(account_id)
        self._lock = threading.Lock()
        self._transactions = {}
        self._goals = {}
        self._limits = {}
        self._messages = {}
        self._profile = {"monthly_income": 0.0, "has_onboarded": False, "preferences": None, "daily_quote": None}

    def _list(self, bucket):
        with self._lock:
            return [m.model_copy(deep=True) for m in bucket.values()]

    def _put(self, bucket, model):
        with self._lock:
            bucket[model.id] = model.model_copy(deep=True)

    def _update(self, bucket, model):
        with self._lock:
            if model.id not in bucket:
                raise KeyError(model.id)
            bucket[model.id] = model.model_copy(deep=True)

    def _delete(self, bucket, key):
        with self._lock:
            bucket.pop(key, None)

    def list_transactions(self):
        return sorted(self._list(self._transactions), key=lambda t: t.date, reverse=True)

    def insert_transaction(self, tx):
        self._put(self._transactions, tx)

    def update_transaction(self, tx):
        self._update(self._transactions, tx)

    def delete_transaction(self, tx_id):
        self._delete(self._transactions, tx_id)

    def list_goals(self):
        return self._list(self._goals)

    def insert_goal(self, goal):
        self._put(self._goals, goal)

    def update_goal(self, goal):
        self._update(self._goals, goal)

    def delete_goal(self, goal_id):
        self._delete(self._goals, goal_id)

    def list_limits(self):
        return self._list(self._limits)

    def insert_limit(self, limit):
        self._put(self._limits, limit)

    def update_limit(self, limit):
        self._update(self._limits, limit)

    def delete_limit(self, limit_id):
        self._delete(self._limits, limit_id)

    def get_profile(self):
        with self._lock:
            data = dict(self._profile)
        return UserProfile(
            monthly_income=data["monthly_income"],
            has_onboarded=data["has_onboarded"],
            preferences=data["preferences"],
            daily_quote=data["daily_quote"],
            savings_goals=self.list_goals(),
            budget_limits=self.list_limits(),
        )

    def update_income(self, monthly_income):
        with self._lock:
            self._profile["monthly_income"] = float(monthly_income)
            self._profile["has_onboarded"] = True

    def update_preferences(self, preferences):
        with self._lock:
            self._profile["preferences"] = preferences.model_copy(deep=True)

    def update_daily_quote(self, text, day):
        with self._lock:
            self._profile["daily_quote"] = DailyQuote(text=text, date=day)

    def list_messages(self):
        return sorted(self._list(self._messages), key=lambda m: m.timestamp)

    def save_message(self, message):
        self._put(self._messages, message)

    def clear_all(self):
        with self._lock:
            self._transactions.clear()
            self._goals.clear()
            self._limits.clear()
            self._messages.clear()
            self._profile.update({"monthly_income": 0.0, "has_onboarded": False, "preferences": None,
                                  "daily_quote": None})


class FirestoreStore(RecordStore):
    """Store backed by ``clientes/<account_id>`` and its subcollections."""

    def __init__(self, db, account_id="default"):
        self._db = db
        self.account_id = str(account_id or "default")

    def _root(self):
        return self._db.collection("clientes").document(self.account_id)

    def _col(self, name):
        return self._root().collection(name)

    def _load(self, name, model):
        out = []
        for snap in self._col(name).stream():
            data = snap.to_dict() or {}
            data["id"] = snap.id
            out.append(model.model_validate(data))
        return out

    def _set(self, name, model, merge=False):
        self._col(name).document(model.id).set(_to_doc(model), merge=merge)

    def list_transactions(self):
        return sorted(self._load(TRANSACTIONS, Transaction), key=lambda t: t.date, reverse=True)

    def insert_transaction(self, tx):
        self._set(TRANSACTIONS, tx)

    def update_transaction(self, tx):
        self._set(TRANSACTIONS, tx, merge=True)

    def delete_transaction(self, tx_id):
        self._col(TRANSACTIONS).document(str(tx_id)).delete()

    def list_goals(self):
        return self._load(GOALS, SavingsGoal)

    def insert_goal(self, goal):
        self._set(GOALS, goal)

    def update_goal(self, goal):
        self._set(GOALS, goal, merge=True)

    def delete_goal(self, goal_id):
        self._col(GOALS).document(str(goal_id)).delete()

    def list_limits(self):
        return self._load(LIMITS, BudgetLimit)

    def insert_limit(self, limit):
        self._set(LIMITS, limit)

    def update_limit(self, limit):
        self._set(LIMITS, limit, merge=True)

    def delete_limit(self, limit_id):
        self._col(LIMITS).document(str(limit_id)).delete()

    def get_profile(self):
        snap = self._root().get()
        data = (snap.to_dict() or {}) if snap.exists else {}
        return UserProfile(
            monthly_income=float(data.get("monthly_income", 0) or 0),
            has_onboarded=bool(data.get("has_onboarded", False)),
            preferences=UserPreferences.model_validate(data["preferences"]) if data.get("preferences") else None,
            daily_quote=DailyQuote.model_validate(data["daily_quote"]) if data.get("daily_quote") else None,
            savings_goals=self.list_goals(),
            budget_limits=self.list_limits(),
        )

    def update_income(self, monthly_income):
        self._root().set({"monthly_income": float(monthly_income), "has_onboarded": True}, merge=True)

    def update_preferences(self, preferences):
        self._root().set({"preferences": preferences.model_dump(mode="json", exclude_none=True)}, merge=True)

    def update_daily_quote(self, text, day):
        self._root().set({"daily_quote": {"text": text, "date": day.isoformat()}}, merge=True)

    def list_messages(self):
        return sorted(self._load(MESSAGES, ChatMessage), key=lambda m: m.timestamp)

    def save_message(self, message):
        self._set(MESSAGES, message)

    def clear_all(self):
        for name in (TRANSACTIONS, GOALS, LIMITS, MESSAGES):
            col = self._col(name)
            for snap in col.stream():
                col.document(snap.id).delete()
        self._root().set({"monthly_income": 0.0, "has_onboarded": False, "preferences": {}, "daily_quote": None},
                         merge=True)


def _cred_path(raw=None):
    p1 = raw or FIREBASE_CREDENTIALS
    if p1:
        if os.path.exists(p1):
            return p1
        s1 = str(p1).strip()
        if s1.startswith("{"):
            return json.loads(s1)
    p2 = os.path.join(os.getcwd(), "chave_firebase.json")
    if os.path.exists(p2):
        return p2
    raise RuntimeError("credenciais do Firebase não encontradas (defina FIREBASE_CREDENTIALS)")


def init_firebase(credentials_source=None):
    try:
        app = firebase_admin.get_app()
    except ValueError:
        cred = credentials.Certificate(_cred_path(credentials_source))
        app = firebase_admin.initialize_app(cred)
    return firestore.client(app)


def build_store(account_id, backend=None, db=None):
    kind = (backend or STORE_BACKEND or "firestore").lower()
    if kind == "memory":
        return MemoryStore(account_id)
    return FirestoreStore(db if db is not None else init_firebase(), account_id)
