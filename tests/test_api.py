import pytest
from conftest import ImmediateExecutor

from api_diga import create_app
from diga.services.database import MemoryStore
from diga.services.extractor import IntentGateway
from diga.services.orchestrator import ConversationOrchestrator


@pytest.fixture
def stores():
    return {}


@pytest.fixture
def client(stores):
    executor = ImmediateExecutor()
    gateway = IntentGateway(client=None, executor=executor, sleep=lambda s: None)

    def factory(cliente_id):
        store = stores.setdefault(cliente_id, MemoryStore(cliente_id))
        return ConversationOrchestrator(store, gateway, executor=executor)

    app = create_app(session_factory=factory)
    app.config.update(TESTING=True)
    return app.test_client()


def test_health(client):
    assert client.get("/health").get_json() == {"sucesso": True, "status": "ok"}


def test_message_requires_payload(client):
    res = client.post("/mensagem", data="", content_type="application/json")
    assert res.status_code == 400
    assert res.get_json()["sucesso"] is False


def test_message_requires_text(client):
    res = client.post("/mensagem", json={"cliente_id": "ana", "mensagem": "  "})
    assert res.status_code == 400


def test_message_then_confirm_updates_balance(client, stores):
    res = client.post("/mensagem", json={"cliente_id": "ana", "mensagem": "Recebi 200 de freela"})
    assert res.status_code == 200
    resposta = res.get_json()["resposta"]
    assert resposta["isDraft"] is True
    assert resposta["draftData"]["amount"] == 200

    res = client.post("/confirmar", json={"cliente_id": "ana", "mensagem_id": resposta["id"], "confirmar": True})
    body = res.get_json()
    assert body["sucesso"] is True
    assert body["mensagem"]["isDraft"] is False

    saldo = client.get("/saldo?cliente_id=ana").get_json()
    assert saldo["saldo"] == 200
    assert saldo["saldo_formatado"] == "R$ 200,00"
    assert len(stores["ana"].list_transactions()) == 1


def test_confirm_unknown_message_is_404(client):
    res = client.post("/confirmar", json={"cliente_id": "ana", "mensagem_id": "x"})
    assert res.status_code == 404


def test_confirm_requires_message_id(client):
    res = client.post("/confirmar", json={"cliente_id": "ana"})
    assert res.status_code == 400


def test_accounts_are_separate(client):
    client.post("/renda", json={"cliente_id": "ana", "renda_mensal": 3000})
    assert client.get("/saldo?cliente_id=ana").get_json()["saldo"] == 3000
    assert client.get("/saldo?cliente_id=bia").get_json()["saldo"] == 0


def test_income_must_be_numeric(client):
    res = client.post("/renda", json={"cliente_id": "ana", "renda_mensal": "muito"})
    assert res.status_code == 400


def test_limits_and_goals(client):
    client.post("/mensagem", json={"cliente_id": "ana", "mensagem": "limite de 500 para lazer"})
    client.post("/mensagem", json={"cliente_id": "ana", "mensagem": "Meta Carro 50k"})
    limites = client.get("/limites?cliente_id=ana").get_json()["limites"]
    assert [(l["categoria"], l["limite"], l["status"]) for l in limites] == [("Lazer", 500, "ok")]
    metas = client.get("/metas?cliente_id=ana").get_json()["metas"]
    assert metas[0]["nome"] == "Carro"
    assert metas[0]["alvo"] == 50000


def test_history(client):
    client.post("/mensagem", json={"cliente_id": "ana", "mensagem": "oi"})
    msgs = client.get("/historico?cliente_id=ana").get_json()["mensagens"]
    assert [m["sender"] for m in msgs] == ["assistant", "user", "assistant"]


def test_export_csv(client):
    res = client.post("/mensagem", json={"cliente_id": "ana", "mensagem": "Gastei 50 reais na padaria"})
    msg_id = res.get_json()["resposta"]["id"]
    client.post("/confirmar", json={"cliente_id": "ana", "mensagem_id": msg_id})
    res = client.get("/exportar?cliente_id=ana")
    assert res.status_code == 200
    assert res.mimetype == "text/csv"
    assert "attachment" in res.headers["Content-Disposition"]
    lines = res.get_data(as_text=True).splitlines()
    assert lines[0] == "Data,Tipo,Categoria,Descricao,Valor"
    assert lines[1].endswith(',EXPENSE,Alimentação,"Padaria",50.00')


def test_reset(client, stores):
    client.post("/renda", json={"cliente_id": "ana", "renda_mensal": 3000})
    assert client.post("/reset", json={"cliente_id": "ana"}).get_json() == {"sucesso": True}
    assert client.get("/saldo?cliente_id=ana").get_json()["saldo"] == 0
    assert stores["ana"].get_profile().monthly_income == 0
