"""Shared fixtures: inline executor, scripted Gemini client and a Firestore double."""

import json
from concurrent.futures import Future

import pytest

from diga.services.database import FirestoreStore, MemoryStore
from diga.services.extractor import IntentGateway
from diga.services.orchestrator import ConversationOrchestrator


class ImmediateExecutor:
    """Runs submitted work on the caller's thread so tests stay deterministic."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


class FakeGeminiClient:
    """Stands in for ``GeminiClient``; replies are queued strings or exceptions."""

    def __init__(self, replies=None, image="data:image/png;base64,AAAA", quote="Poupar é plantar."):
        self.replies = list(replies or [])
        self.calls = []
        self.image = image
        self.quote = quote
        self.cooldowns = []
        self.available = True

    def queue(self, reply):
        if isinstance(reply, dict):
            reply = json.dumps(reply, ensure_ascii=False)
        self.replies.append(reply)

    def is_available(self):
        return self.available

    def set_cooldown(self, seconds=None):
        self.cooldowns.append(seconds)
        self.available = False

    def generate_intent(self, system_instruction, context, message):
        self.calls.append({"context": context, "message": message})
        if not self.replies:
            raise RuntimeError("no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def generate_goal_image(self, goal_name):
        return self.image

    def daily_quote(self):
        return self.quote


class RateLimited(Exception):
    code = 429
    status = "RESOURCE_EXHAUSTED"


class _FakeDocSnap:
    def __init__(self, doc_id, data, exists):
        self.id = doc_id
        self._data = data
        self.exists = bool(exists)

    def to_dict(self):
        return dict(self._data or {})


class _FakeDocRef:
    def __init__(self, store, path):
        self._store = store
        self._path = path
        self.id = path.rsplit("/", 1)[-1]

    def get(self):
        data = self._store.get(self._path)
        return _FakeDocSnap(self.id, data, data is not None)

    def set(self, payload, merge=False):
        if merge:
            cur = dict(self._store.get(self._path) or {})
            cur.update(payload or {})
            self._store[self._path] = cur
        else:
            self._store[self._path] = dict(payload or {})

    def delete(self):
        self._store.pop(self._path, None)

    def collection(self, name):
        return _FakeCollectionRef(self._store, f"{self._path}/{name}")


class _FakeCollectionRef:
    def __init__(self, store, path):
        self._store = store
        self._path = path

    def document(self, doc_id):
        return _FakeDocRef(self._store, f"{self._path}/{doc_id}")

    def stream(self):
        depth = len(self._path.split("/")) + 1
        prefix = f"{self._path}/"
        return [
            _FakeDocSnap(key.rsplit("/", 1)[-1], value, True)
            for key, value in list(self._store.items())
            if key.startswith(prefix) and len(key.split("/")) == depth
        ]


class FakeFirestoreClient:
    """Path-keyed dict behind the subset of the Firestore client the store uses."""

    def __init__(self):
        self.docs = {}

    def collection(self, name):
        return _FakeCollectionRef(self.docs, str(name))


class FlakyStore(MemoryStore):
    """MemoryStore whose writes fail while ``failing`` is set."""

    def __init__(self, account_id="flaky"):
        super().__init__(account_id)
        self.failing = False

    def _check(self):
        if self.failing:
            raise ConnectionError("firestore indisponível")

    def insert_transaction(self, tx):
        self._check()
        super().insert_transaction(tx)

    def insert_goal(self, goal):
        self._check()
        super().insert_goal(goal)

    def update_goal(self, goal):
        self._check()
        super().update_goal(goal)

    def insert_limit(self, limit):
        self._check()
        super().insert_limit(limit)

    def clear_all(self):
        self._check()
        super().clear_all()


@pytest.fixture
def executor():
    return ImmediateExecutor()


@pytest.fixture
def fake_client():
    return FakeGeminiClient()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def gateway(fake_client, executor, sleeps):
    return IntentGateway(client=fake_client, executor=executor, sleep=sleeps.append)


@pytest.fixture
def offline_gateway(executor):
    return IntentGateway(client=None, executor=executor, sleep=lambda s: None)


@pytest.fixture
def memory_store():
    return MemoryStore("cliente-teste")


@pytest.fixture
def firestore_db():
    return FakeFirestoreClient()


@pytest.fixture
def firestore_store(firestore_db):
    return FirestoreStore(firestore_db, "cliente-teste")


@pytest.fixture
def session(memory_store, offline_gateway, executor):
    orch = ConversationOrchestrator(memory_store, offline_gateway, client=None, executor=executor)
    orch.load()
    return orch


@pytest.fixture
def online_session(memory_store, gateway, fake_client, executor):
    orch = ConversationOrchestrator(memory_store, gateway, client=fake_client, executor=executor)
    orch.load()
    return orch
