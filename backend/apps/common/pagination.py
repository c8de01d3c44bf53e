"""
分页工具（apps.common.pagination）

设计目标：
- 统一仓储层的分页入参（PaginationParam）与分页结果（PageResult）；
- 基于 django.core.paginator.Paginator，页码从 1 开始；
- 控制默认分页大小/最大分页大小，防止一次拉取过多数据；
- only_count 只统计总数不取数据，pagination=False 时返回全部数据
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Tuple, TypeVar

from django.core.paginator import EmptyPage, Paginator
from django.db.models import QuerySet

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

T = TypeVar("T")


@dataclass
class PaginationParam:
    # 是否分页；False 时返回全部数据
    pagination: bool = False
    # 只查询总数
    only_count: bool = False
    # 当前页码（从 1 开始）
    current: int = 1
    # 每页大小
    page_size: int = DEFAULT_PAGE_SIZE

    def normalized_page_size(self) -> int:
        """page_size 兜底：<=0 用默认值，超过上限截断"""
        size = self.page_size if self.page_size > 0 else DEFAULT_PAGE_SIZE
        return min(size, MAX_PAGE_SIZE)


@dataclass
class PageResult:
    total: int = 0
    current: int = 0
    page_size: int = 0


@dataclass
class QueryResult(Generic[T]):
    data: List[T]
    page_result: PageResult | None = None


def paginate_queryset(qs: QuerySet, param: PaginationParam | None = None) -> Tuple[list, PageResult | None]:
    """
    按分页参数切分 QuerySet，返回 (当前页数据, 分页信息)

    - only_count：返回 ([], PageResult(total))
    - 未开启分页：返回全部数据，分页信息为 None
    - 页码越界：返回空列表，但保留总数
    """
    param = param or PaginationParam()
    if param.only_count:
        return [], PageResult(total=qs.count())
    if not param.pagination:
        return list(qs), None

    page_size = param.normalized_page_size()
    current = max(1, param.current)
    paginator = Paginator(qs, page_size)
    try:
        items = list(paginator.page(current).object_list)
    except EmptyPage:
        items = []
    return items, PageResult(total=paginator.count, current=current, page_size=page_size)
