"""
Retry engine: решает, что делать после каждой попытки.

Возможные действия:
- DELIVER - отдать результат вызывающему
- RETRY - подождать retry_delay и повторить (attempt + 1)
- REFRESH - обновить токен и повторить (attempt + 1)
"""

from enum import Enum
import logging
import threading
from typing import Optional

from .config import RetryPolicy
from .response import ResponseOutcome

logger = logging.getLogger(__name__)

REFRESH_STATUS_CODES = frozenset({401, 403})


class RetryAction(str, Enum):
    """Следующий шаг цепочки попыток."""
    DELIVER = "deliver"
    RETRY = "retry"
    REFRESH = "refresh"


class RetryCoordinator:
    """
    Политика повторов с поддержкой refresh.

    Одна инстанция на executor; счётчики попыток хранятся в RequestSpec,
    поэтому координатор не имеет состояния запроса и безопасен для потоков.
    Политику можно заменить на лету через update_policy().

    Examples:
        >>> coordinator = RetryCoordinator(RetryPolicy(max_retries=3))
        >>> action = coordinator.next_action(outcome, attempt=0, can_refresh=True)
        >>> if action is RetryAction.RETRY:
        >>>     time.sleep(coordinator.policy.retry_delay)
    """

    def __init__(self, policy: Optional[RetryPolicy] = None):
        """
        Args:
            policy: Политика повторов
        """
        self._policy = policy or RetryPolicy()
        self._lock = threading.Lock()

    @property
    def policy(self) -> RetryPolicy:
        """Текущая политика."""
        with self._lock:
            return self._policy

    def update_policy(self, policy: RetryPolicy) -> None:
        """Заменить политику (действует со следующего решения)."""
        with self._lock:
            self._policy = policy

    def is_retryable(self, status_code: int, attempt: int) -> bool:
        """
        Повторяемая ли ошибка.

        Args:
            status_code: Статус (0 = ошибка транспорта)
            attempt: Сколько попыток уже повторено

        Returns:
            True если attempt < max_retries и статус в retryable_status_codes
        """
        policy = self.policy
        if attempt >= policy.max_retries:
            return False
        return status_code in policy.retryable_status_codes

    def should_refresh(
        self,
        status_code: int,
        can_refresh: bool,
        refresh_attempts: int = 0
    ) -> bool:
        """
        Нужен ли цикл refresh.

        Не ограничен max_retries: 401 может запускать refresh снова и снова,
        пока provider не откажет. Ограничение - только max_refresh_attempts.
        """
        if not can_refresh or status_code not in REFRESH_STATUS_CODES:
            return False
        limit = self.policy.max_refresh_attempts
        if limit is not None and refresh_attempts >= limit:
            logger.debug(
                "Refresh limit reached (%d/%d), falling back to plain retry",
                refresh_attempts, limit
            )
            return False
        return True

    def next_action(
        self,
        outcome: ResponseOutcome,
        attempt: int,
        can_refresh: bool = False,
        refresh_attempts: int = 0
    ) -> RetryAction:
        """
        Решить следующий шаг.

        Args:
            outcome: Результат последней попытки
            attempt: Номер попытки (RequestSpec.attempt)
            can_refresh: auto-refresh включён и provider настроен
            refresh_attempts: Сколько refresh уже было для этого запроса

        Returns:
            RetryAction
        """
        if outcome.success:
            return RetryAction.DELIVER

        if self.should_refresh(outcome.status_code, can_refresh, refresh_attempts):
            return RetryAction.REFRESH

        if self.is_retryable(outcome.status_code, attempt):
            return RetryAction.RETRY

        return RetryAction.DELIVER
