# apps/common/base/base_repo.py

from __future__ import annotations

from abc import ABC
from typing import Any, Generic, Iterable, Optional, TypeVar

from django.db.models import Model, QuerySet

T = TypeVar("T", bound=Model)


class BaseRepo(ABC, Generic[T]):
    """
    Repository（数据访问层）基类：
    - 统一封装 Django ORM 读写细节，给 Service 提供稳定接口
    - 所有方法都接受可选的 using（数据库别名），默认走当前事务所在连接
    - 用法示例：class MenuRepo(BaseRepo[Menu]): model = Menu
    """

    #: 子类必须指定对应的模型
    model: type[T]

    # ------------------------
    # QuerySet 构建
    # ------------------------

    def get_queryset(self, *, using: Optional[str] = None) -> QuerySet[T]:
        """
        返回默认 QuerySet，子类可覆盖以附加排序/过滤
        """
        if not getattr(self, "model", None):
            raise NotImplementedError("BaseRepo 子类必须声明 model 属性")
        qs = self.model._default_manager.all()
        if using:
            qs = qs.using(using)
        return qs

    def filter(self, *, queryset: Optional[QuerySet[T]] = None, **filters) -> QuerySet[T]:
        """
        通用过滤入口，允许注入自定义 QuerySet
        """
        qs = queryset if queryset is not None else self.get_queryset()
        return qs.filter(**filters)

    def get_or_none(self, pk: Any, *, using: Optional[str] = None) -> Optional[T]:
        """
        按主键获取对象，未命中返回 None，由上层决定是否转为 NotFoundError
        """
        return self.get_queryset(using=using).filter(pk=pk).first()

    def exists(self, **filters) -> bool:
        return self.filter(**filters).exists()

    def count(self, **filters) -> int:
        return self.filter(**filters).count()

    # ------------------------
    # 写操作
    # ------------------------

    def create(self, data: dict) -> T:
        """
        创建记录；主键由调用方预先生成并放入 data
        """
        return self.model._default_manager.create(**data)

    def bulk_create(self, rows: Iterable[dict]) -> list[T]:
        objs = [self.model(**row) for row in rows]
        if not objs:
            return []
        return self.model._default_manager.bulk_create(objs)

    def update_by_id(self, pk: Any, data: dict) -> int:
        """
        按主键更新指定字段，返回受影响行数；不触发 save() 钩子
        """
        if not data:
            return 0
        return self.filter(pk=pk).update(**data)

    def delete_by_id(self, pk: Any) -> int:
        deleted, _ = self.filter(pk=pk).delete()
        return deleted

    def delete_where(self, **filters) -> int:
        """
        按条件批量删除，返回删除行数；条件为空时拒绝执行，避免误删全表
        """
        if not filters:
            raise ValueError("delete_where 需要至少一个过滤条件")
        deleted, _ = self.filter(**filters).delete()
        return deleted
