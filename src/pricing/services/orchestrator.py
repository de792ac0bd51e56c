"""Оркестрация запросов к сервису ценовых решений для корзины лида."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Sequence

from base.config import BatchScope, Settings
from base.exceptions import BatchInProgressError, ExternalServiceError, ValidationError
from cart.domain.models import CartLine, CartLineDraft
from cart.domain.resolver import screen_price
from cart.services.state import CartStateContainer
from pricing.adapters.client import PricingDecisionAbstractClient
from pricing.domain.models import (
    BatchSummary,
    DecodedPricingResponse,
    PricePreview,
    PricingRequest,
    PricingResult,
)
from pricing.services.calculations import (
    build_draft_request,
    build_pricing_request,
    decode_pricing_response,
    preferred_price,
    round_cents_up,
    summary_payload,
    to_pricing_result,
)
from pricing.services.worker import (
    CancellationToken,
    JobOutcome,
    OutcomeStatus,
    RateLimitedWorker,
)

logger = logging.getLogger(__name__)


class PricingOrchestrator:
    """Расчет и применение рекомендованных цен.

    Одновременно выполняется не более одного запроса к сервису
    и не более одной пакетной операции каждой области.
    """

    def __init__(
        self,
        client: PricingDecisionAbstractClient,
        cart: CartStateContainer,
        settings: Settings,
        worker: Optional[RateLimitedWorker] = None,
    ):
        """Инициализация оркестратора."""
        self.client = client
        self.cart = cart
        self.settings = settings
        self.worker = worker or RateLimitedWorker(settings.pricing_throttle_seconds)
        self._lock = asyncio.Lock()
        self._tokens: Dict[BatchScope, CancellationToken] = {}

    async def _decide(self, request: PricingRequest) -> DecodedPricingResponse:
        async with self._lock:
            body = await self.client.calculate(request)
        return decode_pricing_response(body)

    async def calculate_item(
        self, line: CartLine, lines: Optional[Sequence[CartLine]] = None
    ) -> PricingResult:
        """Расчет позиции; результат сохраняется в состоянии корзины."""
        context = self.cart.items if lines is None else lines
        request = build_pricing_request(line, context, self.cart.lead, self.settings)
        decoded = await self._decide(request)
        result = to_pricing_result(line.id, decoded)
        self.cart.set_pricing_result(result)
        logger.info(f"Pricing calculated for lead {self.cart.lead_id}: {summary_payload(result)}")
        return result

    async def calculate_draft(self, draft: CartLineDraft) -> PricePreview:
        """Рекомендованная цена для формы позиции, округленная вверх."""
        if draft.product is None or draft.product.id is None:
            raise ValidationError("Выберите товар")
        request = build_draft_request(draft, self.cart.items, self.cart.lead, self.settings)
        decoded = await self._decide(request)
        return PricePreview(price=round_cents_up(preferred_price(decoded)))

    def is_running(self, scope: BatchScope) -> bool:
        """Выполняется ли пакетная операция области."""
        return scope in self._tokens

    def cancel(self, scope: BatchScope) -> bool:
        """Отмена пакетной операции; False, если она не выполняется."""
        token = self._tokens.get(scope)
        if token is None:
            return False
        logger.info(f"Cancelling {scope.value} for lead {self.cart.lead_id}")
        token.cancel()
        return True

    @asynccontextmanager
    async def _batch(
        self, scope: BatchScope, token: Optional[CancellationToken]
    ) -> AsyncIterator[CancellationToken]:
        if scope in self._tokens:
            raise BatchInProgressError(scope.value)
        token = token or CancellationToken()
        self._tokens[scope] = token
        try:
            yield token
        finally:
            self._tokens.pop(scope, None)

    async def calculate_all(self, token: Optional[CancellationToken] = None) -> BatchSummary:
        """Расчет всех видимых позиций по очереди."""
        scope = BatchScope.CALCULATE_ALL
        async with self._batch(scope, token) as token:
            lines = self.cart.visible_items()
            if not lines:
                return BatchSummary(operation=scope.value, message="Нет позиций для расчета")

            snapshot = list(self.cart.items)

            async def handler(line: CartLine) -> PricingResult:
                try:
                    return await self.calculate_item(line, snapshot)
                except Exception:
                    self.cart.discard_pricing_result(line.id)
                    raise

            outcomes = await self.worker.run(lines, handler, token)

        summary = self._summarize(scope, outcomes)
        if summary.error_count:
            summary.level = "warning"
            summary.message = (
                f"Расчет цен: {summary.success_count} успешно, "
                f"{summary.error_count} с ошибками"
            )
        else:
            summary.level = "success"
            summary.message = f"Цены рассчитаны для {summary.success_count} позиций"
        return self._with_cancelled(summary)

    async def apply_all(self, token: Optional[CancellationToken] = None) -> BatchSummary:
        """Расчет и запись рекомендованных цен для позиций с ценой витрины > 0."""
        scope = BatchScope.APPLY_ALL
        async with self._batch(scope, token) as token:
            lines = [line for line in self.cart.items if screen_price(line).value > 0]
            if not lines:
                return BatchSummary(
                    operation=scope.value, message="Нет позиций с ценой витрины"
                )

            snapshot = list(self.cart.items)

            async def handler(line: CartLine) -> Optional[PricingResult]:
                try:
                    return await self._apply_line(line, snapshot)
                except Exception:
                    self.cart.discard_pricing_result(line.id)
                    raise

            outcomes = await self.worker.run(lines, handler, token)
            refreshed = await self._refresh_after_batch()

        summary = self._summarize(scope, outcomes)
        if summary.error_count:
            summary.level = "warning"
            summary.message = (
                f"Цены применены: {summary.success_count} успешно, "
                f"{summary.error_count} с ошибками"
            )
        elif summary.success_count:
            summary.level = "success"
            summary.message = f"Рекомендованная цена применена к {summary.success_count} позициям"
        else:
            summary.message = "Нет рекомендованных цен для применения"
        if not refreshed:
            summary.level = "warning"
            summary.message = f"{summary.message}; не удалось обновить корзину"
        return self._with_cancelled(summary)

    async def _apply_line(
        self, line: CartLine, lines: Sequence[CartLine]
    ) -> Optional[PricingResult]:
        request = build_pricing_request(line, lines, self.cart.lead, self.settings)
        decoded = await self._decide(request)
        result = to_pricing_result(line.id, decoded)
        price = result.recommended_price
        if price is None or price <= 0:
            logger.info(f"No usable price for item {line.id}, skipping")
            self.cart.discard_pricing_result(line.id)
            return None
        await self.cart.persist_price(line, price)
        self.cart.set_pricing_result(result)
        return result

    async def _refresh_after_batch(self) -> bool:
        """Перечитывание корзины после пакета; ошибка не отменяет итог пакета."""
        try:
            await self.cart.refresh()
        except ExternalServiceError as e:
            logger.warning(f"Failed to reload cart {self.cart.lead_id} after batch: {e}")
            return False
        return True

    @staticmethod
    def _summarize(scope: BatchScope, outcomes: List[JobOutcome]) -> BatchSummary:
        summary = BatchSummary(operation=scope.value, total=len(outcomes))
        for outcome in outcomes:
            if outcome.status is OutcomeStatus.FAILED:
                summary.error_count += 1
                summary.failed_item_ids.append(outcome.job.id)
            elif outcome.status is OutcomeStatus.CANCELLED:
                summary.cancelled_count += 1
            elif outcome.result is None:
                summary.skipped_count += 1
            else:
                summary.success_count += 1
        logger.info(
            f"Batch {scope.value}: {summary.success_count} ok, {summary.error_count} failed, "
            f"{summary.skipped_count} skipped, {summary.cancelled_count} cancelled"
        )
        return summary

    @staticmethod
    def _with_cancelled(summary: BatchSummary) -> BatchSummary:
        if summary.cancelled_count:
            summary.level = "warning"
            summary.message = f"{summary.message} (отменено: {summary.cancelled_count})"
        return summary
