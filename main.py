import argparse
import logging
import os
import sys
import threading
import time

import api_diga
from diga.config import API_HOST, API_PORT, GEMINI_API_KEY, LOG_LEVEL, STORE_BACKEND
from diga.services.database import build_store
from diga.services.extractor import IntentGateway
from diga.services.gemini import build_client
from diga.services.orchestrator import ConversationOrchestrator

logger = logging.getLogger("diga")


def _setup_logging(level=LOG_LEVEL):
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, str(level).upper(), logging.INFO),
    )


def _sync_monitor(registry, interval_seconds=60):
    """Periodically replays writes that failed to reach the store."""
    while True:
        time.sleep(interval_seconds)
        for session in registry.all():
            if not session.unsynced:
                continue
            restantes = session.retry_unsynced()
            logger.info("[sync] conta %s: %s escrita(s) pendente(s)", session.store.account_id, restantes)


def run_api(backend):
    os.environ["FLASK_SKIP_DOTENV"] = "1"
    if not GEMINI_API_KEY:
        print("⚠️ GEMINI_API_KEY não configurada. O assistente responderá apenas no modo offline.")
    app = api_diga.create_app(backend=backend)
    t_sync = threading.Thread(target=_sync_monitor, args=(app.extensions["diga_sessions"],), daemon=True)
    t_sync.start()
    app.run(host=API_HOST, port=API_PORT, debug=False, use_reloader=False)


def _print_message(msg):
    print(f"\n🤖 {msg.text}")
    if msg.is_draft:
        print("   Confirmar? [s/n]")


def run_chat(cliente_id, backend):
    client = build_client()
    session = ConversationOrchestrator(build_store(cliente_id, backend=backend), IntentGateway(client), client=client)
    if not session.load():
        print("❌ Não foi possível carregar seus dados.")
        sys.exit(1)
    for msg in session.messages[-3:]:
        _print_message(msg)
    pendente = None
    try:
        while True:
            try:
                texto = input("\nvocê> ").strip()
            except EOFError:
                break
            if not texto:
                continue
            if texto.lower() in ("sair", "exit", "quit"):
                break
            if pendente is not None and texto.lower() in ("s", "sim", "n", "nao", "não"):
                session.confirm_draft(pendente, texto.lower().startswith("s"))
                _print_message(session.find_message(pendente))
                pendente = None
                continue
            resposta = session.send_message(texto)
            _print_message(resposta)
            pendente = resposta.id if resposta.is_draft else None
    finally:
        if session.unsynced:
            session.retry_unsynced()
        session.close()


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--service", choices=["api", "chat"], default="api")
    parser.add_argument("--cliente_id", type=str, default="default", help="Conta usada no modo chat")
    parser.add_argument("--memoria", action="store_true", help="Guardar dados só em memória (sem Firestore)")
    args = parser.parse_args()
    _setup_logging()
    backend = "memory" if args.memoria else STORE_BACKEND
    if args.service == "api":
        run_api(backend)
    else:
        run_chat(args.cliente_id, backend)


if __name__ == "__main__":
    main()
