# apps/menus/repo.py

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.common.base.base_repo import BaseRepo
from apps.common.pagination import PageResult, PaginationParam, paginate_queryset
from apps.menus.tree import PATH_SEP

from .models import Menu, MenuAction, MenuActionResource


# 仓储层：封装菜单、菜单动作、动作资源的数据库访问，供服务层复用


def subtree_filter(full_path: str) -> Q:
    """
    子树条件：上级路径等于 full_path，或以 "full_path/" 开头

    按路径段匹配，避免 "12" 误命中 "123/..."
    """
    return Q(parent_path=full_path) | Q(parent_path__startswith=full_path + PATH_SEP)


class MenuRepo(BaseRepo[Menu]):
    """
    菜单仓储：
    - 条件查询 + 分页
    - 同级重名判断、子节点计数
    - 子树查询与物化路径更新
    """

    model = Menu

    def build_query(
            self,
            *,
            ids: Iterable[int] | None = None,
            name: str = "",
            query_value: str = "",
            parent_id: Optional[int] = None,
            prefix_parent_path: str = "",
            is_show: int = 0,
            status: int = 0,
            order_fields: Iterable[str] | None = None,
    ) -> QuerySet[Menu]:
        qs = self.get_queryset()
        ids = list(ids or [])
        if ids:
            qs = qs.filter(id__in=ids)
        if name:
            qs = qs.filter(name=name)
        if query_value:
            qs = qs.filter(name__icontains=query_value)
        if parent_id is not None:
            qs = qs.filter(parent_id=parent_id)
        if prefix_parent_path:
            qs = qs.filter(subtree_filter(prefix_parent_path))
        if is_show:
            qs = qs.filter(is_show=is_show)
        if status:
            qs = qs.filter(status=status)
        order = list(order_fields or [])
        if order:
            # 追加主键保证排序稳定，分页时不会丢/重行
            qs = qs.order_by(*order, "-id")
        return qs

    def paginate(self, qs: QuerySet[Menu], page: PaginationParam | None = None) -> Tuple[list[Menu], PageResult | None]:
        return paginate_queryset(qs, page)

    def get(self, menu_id: int) -> Optional[Menu]:
        return self.get_or_none(menu_id)

    def has_any(self) -> bool:
        return self.get_queryset().exists()

    def exists_sibling_name(self, *, parent_id: int, name: str) -> bool:
        """同一上级下是否已存在同名菜单"""
        return self.exists(parent_id=parent_id, name=name)

    def count_children(self, menu_id: int) -> int:
        return self.count(parent_id=menu_id)

    def list_subtree(self, full_path: str, *, using: Optional[str] = None) -> list[Menu]:
        """返回完整路径为 full_path 的节点的全部后代（任意深度）"""
        return list(self.get_queryset(using=using).filter(subtree_filter(full_path)).order_by("parent_path", "id"))

    def update(self, menu_id: int, data: dict) -> int:
        payload = dict(data)
        payload["updated_at"] = timezone.now()
        return self.update_by_id(menu_id, payload)

    def update_parent_path(self, menu_id: int, parent_path: str) -> int:
        return self.update_by_id(menu_id, {"parent_path": parent_path})

    def update_status(self, menu_id: int, status: int) -> int:
        return self.update(menu_id, {"status": status})


class MenuActionRepo(BaseRepo[MenuAction]):
    """菜单动作仓储：按菜单查询/删除，重命名"""

    model = MenuAction

    def list_all(self) -> list[MenuAction]:
        return list(self.get_queryset())

    def list_by_menu(self, menu_id: int) -> list[MenuAction]:
        return list(self.filter(menu_id=menu_id))

    def update_name(self, action_id: int, name: str) -> int:
        return self.update_by_id(action_id, {"name": name})

    def delete_by_menu_id(self, menu_id: int) -> int:
        return self.delete_where(menu_id=menu_id)


class MenuActionResourceRepo(BaseRepo[MenuActionResource]):
    """
    动作资源仓储：
    - 按动作 ID 集合查询
    - 按菜单 ID（经动作表子查询）查询/删除
    """

    model = MenuActionResource

    @staticmethod
    def _action_ids_of(menu_ids: Iterable[int]) -> QuerySet:
        return MenuAction.objects.filter(menu_id__in=list(menu_ids)).values("id")

    def list_by_action_ids(self, action_ids: Iterable[int]) -> list[MenuActionResource]:
        action_ids = list(action_ids)
        if not action_ids:
            return []
        return list(self.filter(action_id__in=action_ids))

    def list_by_menu_ids(self, menu_ids: Iterable[int]) -> list[MenuActionResource]:
        return list(self.filter(action_id__in=self._action_ids_of(menu_ids)))

    def delete_by_action_id(self, action_id: int) -> int:
        return self.delete_where(action_id=action_id)

    def delete_by_menu_id(self, menu_id: int) -> int:
        return self.delete_where(action_id__in=self._action_ids_of([menu_id]))
