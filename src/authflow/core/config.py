"""
Система конфигурации authflow.

Все конфиги immutable (frozen dataclasses). Runtime-изменения в
RequestExecutor (set_timeout, set_retry_config, ...) создают новые
экземпляры через dataclasses.replace.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Dict, FrozenSet, Iterable, Mapping, Tuple, Union, TYPE_CHECKING
from types import MappingProxyType
from urllib.parse import urlparse

if TYPE_CHECKING:
    from .logging import LoggingConfig

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TIMEOUT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class TimeoutConfig:
    """
    Конфигурация таймаутов транспорта.

    Args:
        connect: Таймаут подключения (сек)
        read: Таймаут чтения данных (сек)

    Examples:
        >>> TimeoutConfig(connect=10, read=10)
    """
    connect: float = 30
    read: float = 30

    def __post_init__(self):
        """Валидация."""
        if self.connect <= 0:
            raise ValueError("connect timeout must be positive")
        if self.read <= 0:
            raise ValueError("read timeout must be positive")

    def as_tuple(self) -> Tuple[float, float]:
        """Вернуть как (connect, read) для requests."""
        return (self.connect, self.read)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RETRY POLICY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class RetryPolicy:
    """
    Политика повторов.

    Args:
        max_retries: Максимум повторов (не включая первую попытку)
        retry_delay_ms: Пауза между повторами (мс)
        retryable_status_codes: Какие статус коды ретраить
        max_refresh_attempts: Лимит циклов refresh на один запрос
            (None = без лимита)

    Examples:
        >>> RetryPolicy(max_retries=5, retry_delay_ms=200)
        >>> RetryPolicy(retryable_status_codes={502, 503, 504})
    """
    max_retries: int = 3
    retry_delay_ms: int = 1000
    retryable_status_codes: FrozenSet[int] = field(
        default_factory=lambda: frozenset({401, 403, 503})
    )
    max_refresh_attempts: Optional[int] = None

    def __post_init__(self):
        """Валидация и заморозка множества кодов."""
        if not isinstance(self.retryable_status_codes, frozenset):
            object.__setattr__(
                self, 'retryable_status_codes', frozenset(self.retryable_status_codes)
            )
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be non-negative")
        if self.max_refresh_attempts is not None and self.max_refresh_attempts < 0:
            raise ValueError("max_refresh_attempts must be non-negative")

    @property
    def retry_delay(self) -> float:
        """Пауза в секундах."""
        return self.retry_delay_ms / 1000.0

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class TransportConfig:
    """
    Конфигурация транспорта.

    Args:
        host: Хост ("api.example.com") или полный URL ("https://api.example.com")
        port: Порт (None = по умолчанию для схемы)
        use_ssl: HTTPS или HTTP
        verify_ssl: Проверять сертификат сервера
        timeout: Таймауты

    Examples:
        >>> TransportConfig(host="api.example.com", port=443)
        >>> TransportConfig(host="localhost", port=8080, use_ssl=False)
    """
    host: str = "localhost"
    port: Optional[int] = None
    use_ssl: bool = True
    verify_ssl: bool = True
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)

    def __post_init__(self):
        """Валидация."""
        if not self.host:
            raise ValueError("host must not be empty")
        if self.port is not None and not (0 < self.port < 65536):
            raise ValueError("port must be in range 1-65535")

    @property
    def base_url(self) -> str:
        """
        Собрать базовый URL.

        Полный URL в host имеет приоритет над use_ssl/port.
        """
        if self.host.startswith(("http://", "https://")):
            parsed = urlparse(self.host)
            if self.port is not None and parsed.port is None:
                return f"{parsed.scheme}://{parsed.hostname}:{self.port}{parsed.path}".rstrip('/')
            return self.host.rstrip('/')

        scheme = "https" if self.use_ssl else "http"
        default_port = 443 if self.use_ssl else 80
        if self.port is None or self.port == default_port:
            return f"{scheme}://{self.host}"
        return f"{scheme}://{self.host}:{self.port}"

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# MAIN CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class ClientConfig:
    """
    Главная конфигурация RequestExecutor.

    Args:
        transport: Конфигурация транспорта
        retry: Политика повторов
        default_headers: Заголовки для каждого запроса
        auto_refresh_token: Обновлять токен на 401/403
        max_workers: Размер пула воркеров
        refresh_timeout: Сколько ждать callback от refresh (сек)
        logging: Конфигурация структурного логирования (None = только stdlib logger)

    Examples:
        >>> config = ClientConfig.create(host="api.example.com")
        >>> config = ClientConfig.create(host="localhost", port=8080, use_ssl=False, max_retries=0)
    """
    transport: TransportConfig = field(default_factory=TransportConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    default_headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    auto_refresh_token: bool = True
    max_workers: int = 8
    refresh_timeout: float = 60.0
    logging: Optional['LoggingConfig'] = None

    def __post_init__(self):
        """Заморозить headers и провалидировать."""
        if isinstance(self.default_headers, dict):
            object.__setattr__(
                self, 'default_headers', MappingProxyType(dict(self.default_headers))
            )
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")
        if self.refresh_timeout <= 0:
            raise ValueError("refresh_timeout must be positive")

    @classmethod
    def create(
        cls,
        host: str = "localhost",
        port: Optional[int] = None,
        use_ssl: bool = True,
        verify_ssl: bool = True,
        timeout: Union[float, Tuple[float, float], TimeoutConfig] = 30,
        max_retries: int = 3,
        retry_delay_ms: int = 1000,
        retryable_status_codes: Optional[Iterable[int]] = None,
        headers: Optional[Dict[str, str]] = None,
        logging: Optional['LoggingConfig'] = None,
        **kwargs
    ) -> 'ClientConfig':
        """
        Удобный конструктор конфигурации.

        Args:
            host: Хост или полный URL
            port: Порт
            use_ssl: HTTPS
            verify_ssl: Проверять сертификат
            timeout: Таймаут (число, (connect, read) или TimeoutConfig)
            max_retries: Количество повторов
            retry_delay_ms: Пауза между повторами
            retryable_status_codes: Коды для повтора
            headers: Дефолтные заголовки
            logging: Конфигурация логирования
            **kwargs: auto_refresh_token, max_workers, refresh_timeout

        Returns:
            ClientConfig instance

        Examples:
            >>> ClientConfig.create(host="api.example.com", timeout=(10, 10))
        """
        if isinstance(timeout, TimeoutConfig):
            timeout_cfg = timeout
        elif isinstance(timeout, tuple):
            timeout_cfg = TimeoutConfig(connect=timeout[0], read=timeout[1])
        else:
            timeout_cfg = TimeoutConfig(connect=timeout, read=timeout)

        retry_kwargs = {
            'max_retries': max_retries,
            'retry_delay_ms': retry_delay_ms,
        }
        if retryable_status_codes is not None:
            retry_kwargs['retryable_status_codes'] = frozenset(retryable_status_codes)

        return cls(
            transport=TransportConfig(
                host=host,
                port=port,
                use_ssl=use_ssl,
                verify_ssl=verify_ssl,
                timeout=timeout_cfg,
            ),
            retry=RetryPolicy(**retry_kwargs),
            default_headers=headers or {},
            logging=logging,
            **kwargs
        )

    def with_retry(self, retry: RetryPolicy) -> 'ClientConfig':
        """Новый конфиг с другой политикой повторов."""
        return replace(self, retry=retry)

    def with_transport(self, transport: TransportConfig) -> 'ClientConfig':
        """Новый конфиг с другим транспортом."""
        return replace(self, transport=transport)

    def with_headers(self, headers: Dict[str, str]) -> 'ClientConfig':
        """
        Новый конфиг с дополнительными заголовками.

        Example:
            >>> new_config = config.with_headers({"X-API-Key": "secret"})
        """
        merged = dict(self.default_headers)
        merged.update(headers)
        return replace(self, default_headers=merged)
