# apps/common/base/trans.py

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, transaction

R = TypeVar("R")


class TransExecutor:
    """
    事务执行器：
    - exec(fn)：在单个数据库事务中执行 fn，fn 抛出任何异常都会回滚
    - 嵌套调用复用外层事务（内层只建保存点），最外层成功才真正提交
    - no_trans_alias()：返回“事务外读”使用的数据库别名，用于读取已提交数据
    """

    def __init__(self, using: Optional[str] = None, *, savepoint: bool = True):
        self.using = using or DEFAULT_DB_ALIAS
        self.savepoint = savepoint

    def atomic(self):
        return transaction.atomic(using=self.using, savepoint=self.savepoint)

    def exec(self, fn: Callable[..., R], *args, **kwargs) -> R:
        with self.atomic():
            return fn(*args, **kwargs)

    def in_transaction(self) -> bool:
        return transaction.get_connection(self.using).in_atomic_block

    @staticmethod
    def no_trans_alias() -> str:
        """
        事务外读的连接别名（settings.NO_TRANS_DB_ALIAS）

        指向独立连接时读到的是已提交快照；未单独配置时与 default 相同，
        此时读取落在当前事务内
        """
        alias = getattr(settings, "NO_TRANS_DB_ALIAS", "") or DEFAULT_DB_ALIAS
        if alias not in settings.DATABASES:
            return DEFAULT_DB_ALIAS
        return alias
