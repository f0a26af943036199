"""重试机制模块

为单个对象的传输（client.jar、资源对象）提供错误分类和指数退避重试。
清单和版本元数据的获取不经过这里，失败即终止。
"""

import asyncio
import logging
import random
import time
from typing import Any, Callable, Optional, TypeVar

import aiohttp
from pydantic import BaseModel, Field, field_validator

from .exceptions import IntegrityError, McAssetDlException, NotFoundError, TransportError

F = TypeVar("F", bound=Callable[..., Any])

log = logging.getLogger(__name__)


class RetryableError(McAssetDlException):
    """可重试的错误"""

    pass


class RetryConfig(BaseModel):
    """重试配置"""

    max_attempts: int = Field(default=3, description="最大尝试次数")
    base_delay: float = Field(default=1.0, description="基础延迟(秒)")
    backoff_factor: float = Field(default=2.0, description="退避因子")
    max_delay: float = Field(default=30.0, description="最大延迟(秒)")
    jitter: bool = Field(default=True, description="是否添加随机抖动")

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be at least 1")
        return v

    @field_validator("base_delay")
    @classmethod
    def validate_base_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("base_delay cannot be negative")
        return v

    @classmethod
    def from_config(cls, config: Any) -> "RetryConfig":
        """从应用配置创建重试配置"""
        return cls(
            max_attempts=getattr(config, "max_retries", 3),
            base_delay=getattr(config, "retry_base_delay", 1.0),
        )

    def delay_for(self, attempt: int) -> float:
        """第 attempt 次失败后的等待时间（attempt 从 0 开始）"""
        delay = min(self.base_delay * (self.backoff_factor**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random() * 0.5
        return delay


class RetryStats(BaseModel):
    """重试统计"""

    total_attempts: int = Field(default=0, description="总尝试次数")
    failed_attempts: int = Field(default=0, description="失败次数")
    total_delay: float = Field(default=0.0, description="总延迟时间")
    last_error: Optional[str] = Field(default=None, description="最后的错误信息")
    start_time: Optional[float] = Field(default=None, description="开始时间")

    def record_attempt(self, is_success: bool, error: Optional[str] = None) -> None:
        """记录一次尝试"""
        if self.start_time is None:
            self.start_time = time.time()

        self.total_attempts += 1
        if not is_success:
            self.failed_attempts += 1
            self.last_error = error

    def record_delay(self, delay: float) -> None:
        self.total_delay += delay


def is_retryable_error(error: BaseException) -> bool:
    """判断错误是否可重试"""

    if isinstance(error, (RetryableError, IntegrityError)):
        return True

    # 404/410 表示对象不存在，重试没有意义
    if isinstance(error, NotFoundError):
        return False

    if isinstance(error, TransportError):
        if error.status_code in (408, 429, 500, 502, 503, 504):
            return True
        if error.status_code and 400 <= error.status_code < 500:
            return False
        return True

    if isinstance(error, (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError)):
        return True

    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True

    if error.__cause__ is not None:
        return is_retryable_error(error.__cause__)

    return False


def create_retry_decorator(
    config: RetryConfig, stats: Optional[RetryStats] = None
) -> Callable[[F], F]:
    """创建重试装饰器"""

    if stats is None:
        stats = RetryStats()

    def decorator(func: F) -> F:
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(config.max_attempts):
                try:
                    result = await func(*args, **kwargs)
                    stats.record_attempt(True)
                    return result

                except Exception as e:
                    stats.record_attempt(False, str(e))

                    if not is_retryable_error(e) or attempt == config.max_attempts - 1:
                        raise

                    delay = config.delay_for(attempt)
                    log.debug(
                        "Attempt %d/%d failed (%s), retrying in %.2fs",
                        attempt + 1,
                        config.max_attempts,
                        e,
                        delay,
                    )
                    stats.record_delay(delay)
                    await asyncio.sleep(delay)

            raise RuntimeError("Unexpected retry loop completion")

        return wrapper  # type: ignore

    return decorator


async def call_with_retry(
    config: RetryConfig,
    func: Callable[..., Any],
    *args: Any,
    stats: Optional[RetryStats] = None,
    **kwargs: Any,
) -> Any:
    """以重试策略调用一次协程函数"""
    return await create_retry_decorator(config, stats)(func)(*args, **kwargs)
