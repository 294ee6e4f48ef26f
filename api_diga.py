import logging
import threading

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from diga.services.export import export_csv, export_filename
from diga.services.extractor import IntentGateway
from diga.services.finance import goals_summary, limit_usage
from diga.services.database import build_store
from diga.services.gemini import build_client
from diga.services.orchestrator import ConversationOrchestrator
from diga.utils.formatting import formatar_moeda

logger = logging.getLogger(__name__)


def default_session_factory(backend=None):
    client = build_client()
    gateway = IntentGateway(client)

    def factory(cliente_id):
        return ConversationOrchestrator(build_store(cliente_id, backend=backend), gateway, client=client)

    return factory


class SessionRegistry:
    """One loaded ``ConversationOrchestrator`` per ``cliente_id``."""

    def __init__(self, factory):
        self._factory = factory
        self._sessions = {}
        self._lock = threading.Lock()

    def get(self, cliente_id):
        key = str(cliente_id or "default")
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = self._factory(key)
                session.load()
                self._sessions[key] = session
            return session

    def all(self):
        with self._lock:
            return list(self._sessions.values())

    def close(self):
        with self._lock:
            sessions, self._sessions = list(self._sessions.values()), {}
        for s in sessions:
            s.close()


def _cliente_id(data=None):
    if data is not None and data.get("cliente_id"):
        return str(data.get("cliente_id"))
    return str(request.args.get("cliente_id") or "default")


def create_app(session_factory=None, backend=None):
    app = Flask(__name__)
    CORS(app)
    sessions = SessionRegistry(session_factory or default_session_factory(backend))
    app.extensions["diga_sessions"] = sessions

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"sucesso": True, "status": "ok"})

    @app.route('/mensagem', methods=['POST'])
    def mensagem():
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"sucesso": False, "erro": "Payload não fornecido"}), 400
        texto = str(data.get("mensagem") or "").strip()
        if not texto:
            return jsonify({"sucesso": False, "erro": "Mensagem não fornecida"}), 400
        session = sessions.get(_cliente_id(data))
        resposta = session.send_message(texto)
        return jsonify({
            "sucesso": True,
            "resposta": resposta.to_wire(),
            "pendentes_sincronizacao": len(session.unsynced),
        })

    @app.route('/confirmar', methods=['POST'])
    def confirmar():
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"sucesso": False, "erro": "Payload não fornecido"}), 400
        mensagem_id = str(data.get("mensagem_id") or "").strip()
        if not mensagem_id:
            return jsonify({"sucesso": False, "erro": "mensagem_id não fornecido"}), 400
        session = sessions.get(_cliente_id(data))
        if session.find_message(mensagem_id) is None:
            return jsonify({"sucesso": False, "erro": "Mensagem não encontrada"}), 404
        alterado = session.confirm_draft(mensagem_id, bool(data.get("confirmar", True)))
        msg = session.find_message(mensagem_id)
        return jsonify({"sucesso": alterado, "mensagem": msg.to_wire()})

    @app.route('/renda', methods=['POST'])
    def renda():
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"sucesso": False, "erro": "Payload não fornecido"}), 400
        try:
            valor = float(data.get("renda_mensal"))
        except (TypeError, ValueError):
            return jsonify({"sucesso": False, "erro": "renda_mensal inválida"}), 400
        session = sessions.get(_cliente_id(data))
        session.update_income(valor)
        return jsonify({"sucesso": True, "renda_mensal": session.profile.monthly_income})

    @app.route('/saldo', methods=['GET'])
    def saldo():
        session = sessions.get(_cliente_id())
        valor = session.balance
        return jsonify({
            "sucesso": True,
            "saldo": round(valor, 2),
            "saldo_formatado": formatar_moeda(valor),
            "renda_mensal": session.profile.monthly_income,
            "transacoes": len(session.transactions),
        })

    @app.route('/historico', methods=['GET'])
    def historico():
        session = sessions.get(_cliente_id())
        return jsonify({"sucesso": True, "mensagens": [m.to_wire() for m in list(session.messages)]})

    @app.route('/limites', methods=['GET'])
    def limites():
        session = sessions.get(_cliente_id())
        return jsonify({"sucesso": True, "limites": limit_usage(session.profile, session.transactions)})

    @app.route('/metas', methods=['GET'])
    def metas():
        session = sessions.get(_cliente_id())
        return jsonify({"sucesso": True, "metas": goals_summary(session.profile)})

    @app.route('/exportar', methods=['GET'])
    def exportar():
        session = sessions.get(_cliente_id())
        corpo = export_csv(session.transactions)
        return Response(
            corpo,
            content_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
        )

    @app.route('/reset', methods=['POST'])
    def reset():
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"sucesso": False, "erro": "Payload não fornecido"}), 400
        session = sessions.get(_cliente_id(data))
        ok = session.reset()
        logger.info("[reset] dados da conta %s apagados", session.store.account_id)
        return jsonify({"sucesso": ok})

    return app
