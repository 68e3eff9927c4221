from __future__ import annotations

import logging

import requests

from shopledger.domain.errors import InsightUnavailableError, ValidationError

log = logging.getLogger(__name__)

RECENT_INVOICES = 10


class TextCompletionClient:
    """Minimal JSON client for a text-completion endpoint.

    Request:  {"system": <context>, "prompt": <question>, "temperature": .., "max_tokens": ..}
    Response: {"text": "..."}
    """

    def __init__(self, url: str, api_key: str = "", timeout: float = 15.0):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    def _post_json(self, payload: dict) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        r = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def complete(self, context: str, prompt: str, temperature: float = 0.7, max_tokens: int = 500) -> str:
        if not self.url:
            raise InsightUnavailableError("No completion endpoint configured.")
        try:
            data = self._post_json(
                {"system": context, "prompt": prompt, "temperature": temperature, "max_tokens": max_tokens}
            )
        except (requests.RequestException, ValueError) as e:
            log.warning("completion_failed url=%s error=%s", self.url, e)
            raise InsightUnavailableError(f"Completion request failed: {e}") from e

        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise InsightUnavailableError(f"Completion response missing text. Raw: {data}")
        return text.strip()


class InsightService:
    """Read-only business assistant. Never writes anything."""

    def __init__(self, repo, profiles, client: TextCompletionClient):
        self.repo = repo
        self.profiles = profiles
        self.client = client

    def build_context(self) -> str:
        profile = self.profiles.get_profile()
        shop = profile.shop_name if profile else ""
        owner = profile.name if profile else ""

        stock = "\n".join(
            f"{p.name} (SKU: {p.sku}): {p.stock_quantity} units left, Min Threshold: {p.low_stock_threshold}"
            for p in self.repo.list_products()
        )
        sales = "\n".join(
            f"Inv #{i.invoice_number}: {i.total:.2f} to {i.customer_name}"
            for i in self.repo.list_invoices(limit=RECENT_INVOICES)
        )
        vendors = "\n".join(f"{v.name}: Balance Owed {v.total_balance:.2f}" for v in self.repo.list_vendors())

        return (
            f'You are the business consultant for "{shop}".\n'
            f"Current store owner: {owner}.\n\n"
            f"INVENTORY STATUS:\n{stock or '(none)'}\n\n"
            f"RECENT SALES (last {RECENT_INVOICES}):\n{sales or '(none)'}\n\n"
            f"VENDOR DEBTS:\n{vendors or '(none)'}\n\n"
            "Answer business questions accurately and concisely. Suggest specific actions, "
            "such as reordering a product that is running low. Use the numbers above for profit or growth questions."
        )

    def ask(self, question: str) -> str:
        question = (question or "").strip()
        if not question:
            raise ValidationError("Question is empty.")
        answer = self.client.complete(self.build_context(), question)
        log.info("insight_answered chars=%s", len(answer))
        return answer
