import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Optional

from diga.config import (
    HISTORY_TURNS,
    REMOTE_BACKOFF_SECONDS,
    REMOTE_MAX_RETRIES,
    REMOTE_TIMEOUT_SECONDS,
)
from diga.constants.prompts import SYSTEM_PROMPT
from diga.services.finance import compute_balance
from diga.services.gemini import FailureReason, classify_failure
from diga.services.rule_based import resolve_intent
from diga.schemas import dump_ai_response, parse_ai_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteOutcome:
    response: Optional[object] = None
    failure: Optional[FailureReason] = None
    detail: str = ""

    @property
    def ok(self):
        return self.response is not None


def should_retry(failure, attempt, max_retries):
    return failure == FailureReason.RATE_LIMIT and attempt < max_retries


def backoff_seconds(attempt, base=REMOTE_BACKOFF_SECONDS):
    return base * (2 ** (attempt - 1))


def build_context(profile, balance, history, turns=HISTORY_TURNS):
    goals = [{"name": g.name, "t": g.target_amount, "c": g.current_amount} for g in profile.savings_goals]
    limits = [{"category": l.category, "amount": l.amount} for l in profile.budget_limits]
    recent = list(history or [])[-turns:] if turns > 0 else []
    return (
        "DADOS:\n"
        f"Saldo: {balance:.0f}\n"
        f"Renda: {profile.monthly_income}\n"
        f"Metas: {json.dumps(goals, ensure_ascii=False)}\n"
        f"Limites: {json.dumps(limits, ensure_ascii=False)}\n"
        "\n"
        "ULTIMAS MSG:\n"
        + "\n".join(recent)
    )


class IntentGateway:
    """Resolves a user message into an ``AIResponse``.

    Tries the remote model first, bounded by ``timeout`` seconds; a
    rate-limited call is retried ``max_retries`` times with exponential
    backoff. Any other failure, or exhausted retries, falls back to the
    offline resolver with the locally computed balance. No exception leaves
    ``resolve``.
    """

    def __init__(self, client=None, timeout=REMOTE_TIMEOUT_SECONDS, max_retries=REMOTE_MAX_RETRIES,
                 backoff_base=REMOTE_BACKOFF_SECONDS, history_turns=HISTORY_TURNS,
                 sleep=time.sleep, executor=None):
        self.client = client
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.history_turns = history_turns
        self._sleep = sleep
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="diga-gemini")

    def call_remote(self, message, context):
        if self.client is None or not self.client.is_available():
            return RemoteOutcome(failure=FailureReason.UNAVAILABLE)
        try:
            future = self._executor.submit(self.client.generate_intent, SYSTEM_PROMPT, context, message)
        except RuntimeError as e:
            return RemoteOutcome(failure=FailureReason.UNAVAILABLE, detail=str(e))
        try:
            text = future.result(timeout=self.timeout)
        except FuturesTimeout:
            # The worker keeps running; its result is simply never read.
            return RemoteOutcome(failure=FailureReason.TIMEOUT, detail=f"{self.timeout}s")
        except Exception as e:
            return RemoteOutcome(failure=classify_failure(e), detail=str(e))
        if not text or not str(text).strip():
            return RemoteOutcome(failure=FailureReason.EMPTY)
        try:
            return RemoteOutcome(response=parse_ai_response(text))
        except ValueError as e:
            return RemoteOutcome(failure=FailureReason.MALFORMED, detail=str(e)[:200])

    def resolve(self, message, history, profile, transactions):
        balance = compute_balance(profile, transactions)
        context = build_context(profile, balance, history, self.history_turns)
        attempt = 0
        while True:
            outcome = self.call_remote(message, context)
            if outcome.ok:
                logger.info("[resolve] fonte=gemini intent=%s", outcome.response.intent)
                logger.debug("[resolve] resposta=%s", dump_ai_response(outcome.response))
                return outcome.response
            if should_retry(outcome.failure, attempt, self.max_retries):
                attempt += 1
                wait = backoff_seconds(attempt, self.backoff_base)
                logger.warning("[resolve] limite de requisições; nova tentativa em %.1fs", wait)
                self._sleep(wait)
                continue
            if outcome.failure == FailureReason.RATE_LIMIT and self.client is not None:
                self.client.set_cooldown()
            if outcome.failure != FailureReason.UNAVAILABLE:
                logger.warning("[resolve] fonte=offline motivo=%s %s", outcome.failure.value, outcome.detail)
            response = resolve_intent(message, balance)
            logger.info("[resolve] fonte=local-regra intent=%s", response.intent)
            return response

    def shutdown(self):
        self._executor.shutdown(wait=False)
