# apps/common/base/base_service.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from apps.common.base.trans import TransExecutor
from apps.common.exceptions import BizError
from apps.common.infra.logger import get_logger

logger = get_logger(__name__)

ServiceReturn = TypeVar("ServiceReturn")


class BaseService(ABC, Generic[ServiceReturn]):
    """
    Service 层业务逻辑基类

    约束：
        - 负责编排业务逻辑，不处理传输层
        - 使用普通 Python 参数，避免依赖 request
        - 通过仓储/Repo 访问持久化层，避免散乱 ORM 调用
        - 默认在事务中执行 `perform`；需要“先校验、后写入”的服务关闭
          atomic_enabled，在 perform 内用 self.atomic() 包住写入部分
        - 预期内的业务失败使用 BizError；系统异常向上抛出

    标准流程：validate(...) -> perform(...) -> handle_error(...)
    """

    atomic_enabled: bool = True
    atomic_savepoint: bool = True

    # ------------------------
    # 工具方法
    # ------------------------

    def atomic(self, using: str | None = None):
        """
        为子类提供事务上下文管理器，嵌套时复用外层事务

            with self.atomic():
                ...
        """
        return TransExecutor(using, savepoint=self.atomic_savepoint).atomic()

    # ------------------------
    # 子类扩展点
    # ------------------------

    def validate(self, *args, **kwargs) -> None:
        """
        可选的业务预检查钩子，默认空实现
        """
        return None

    @abstractmethod
    def perform(self, *args, **kwargs) -> ServiceReturn:
        """
        子类必须实现的业务核心逻辑
        """

    def execute(self, *args, **kwargs) -> ServiceReturn:
        """
        Service 对外的统一入口，封装标准流程
        """
        try:
            self.validate(*args, **kwargs)
            if self.atomic_enabled:
                with self.atomic():
                    return self.perform(*args, **kwargs)
            return self.perform(*args, **kwargs)
        except Exception as exc:
            return self.handle_error(exc)

    __call__ = execute

    def handle_error(self, exc: Exception) -> ServiceReturn:
        """
        业务错误继续抛出 BizError，系统异常记录日志后原样向上抛出
        """
        if isinstance(exc, BizError):
            raise exc
        logger.exception("Service 层出现未捕获的系统异常：%s", self.__class__.__name__, exc_info=exc)
        raise exc
