# apps/menus/schemas.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, List, Mapping, Optional

from apps.common.base.base_schema import BaseSchema
from apps.common.exceptions import ValidationError
from apps.common.pagination import PaginationParam, QueryResult
from apps.menus.models import Menu
from apps.menus.tree import build_menu_tree

# Schema 层：定义菜单/动作/资源的入参与出参结构，以及查询参数


def _coerce_list(items, schema_cls, *, strict: bool = False) -> list:
    """将 dict 列表转为 Schema 列表，已是 Schema 的元素原样保留"""
    result = []
    for item in items or []:
        if isinstance(item, schema_cls):
            result.append(item)
        elif isinstance(item, dict):
            result.append(schema_cls.from_dict(item, strict=strict))
        else:
            raise ValidationError(message=f"无法解析的{schema_cls.label}：{item!r}")
    return result


def _ensure_type(value, types, label: str) -> None:
    """初始化数据的字段类型检查；bool 不当作整数"""
    if isinstance(value, bool) or not isinstance(value, types):
        raise ValidationError(message=f"{label}类型不合法：{value!r}")


@dataclass
class MenuActionResourceSchema(BaseSchema[None]):
    """动作资源：method + path 为比对键"""
    label: ClassVar[str] = "动作资源"
    auto_validate: ClassVar[bool] = True

    method: str
    path: str
    id: Optional[int] = None
    action_id: Optional[int] = None

    def __post_init__(self):
        self.method = (self.method or "").strip().upper()
        self.path = (self.path or "").strip()
        super().__post_init__()

    @property
    def key(self) -> tuple[str, str]:
        return self.method, self.path

    def validate(self) -> None:
        if not self.method:
            raise ValidationError(message="资源请求方法不能为空")
        if not self.path:
            raise ValidationError(message="资源请求路径不能为空")


@dataclass
class MenuActionSchema(BaseSchema[None]):
    """菜单动作：code 为比对键，resources 为其下的接口资源"""
    label: ClassVar[str] = "菜单动作"
    auto_validate: ClassVar[bool] = True

    code: str
    name: str
    id: Optional[int] = None
    menu_id: Optional[int] = None
    resources: List[MenuActionResourceSchema] = field(default_factory=list)

    def __post_init__(self):
        self.resources = _coerce_list(self.resources, MenuActionResourceSchema)
        super().__post_init__()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, strict: bool = False, auto_validate: Optional[bool] = None):
        # 严格模式下资源同样拒绝未知字段
        if strict and data.get("resources"):
            data = dict(data, resources=_coerce_list(data["resources"], MenuActionResourceSchema, strict=True))
        return super().from_dict(data, strict=strict, auto_validate=auto_validate)

    def validate(self) -> None:
        if not self.code:
            raise ValidationError(message="动作编号不能为空")
        if not self.name:
            raise ValidationError(message="动作名称不能为空")
        keys = [r.key for r in self.resources]
        if len(keys) != len(set(keys)):
            raise ValidationError(message=f"动作 {self.code} 下存在重复的资源")


def _validate_actions(actions: List[MenuActionSchema]) -> None:
    codes = [a.code for a in actions]
    if len(codes) != len(set(codes)):
        raise ValidationError(message="动作编号不能重复")


@dataclass
class MenuSchema(BaseSchema[Menu]):
    """
    菜单入参/出参：
    - 创建/更新时由调用方填写 name/parent_id 等业务字段
    - id、parent_path、creator、时间字段由服务层维护
    """
    label: ClassVar[str] = "菜单"
    auto_validate: ClassVar[bool] = True

    name: str
    parent_id: int = 0
    sequence: int = 0
    icon: str = ""
    router: str = ""
    is_show: int = Menu.ShowFlag.SHOW
    status: int = Menu.Status.ENABLED
    memo: str = ""
    actions: List[MenuActionSchema] = field(default_factory=list)
    id: Optional[int] = None
    parent_path: str = ""
    creator: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.actions = _coerce_list(self.actions, MenuActionSchema)
        self.parent_id = int(self.parent_id or 0)
        super().__post_init__()

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError(message="菜单名称不能为空")
        if len(self.name) > 50:
            raise ValidationError(message="菜单名称不能超过 50 个字符")
        if self.parent_id < 0:
            raise ValidationError(message="上级ID不合法")
        if self.is_show not in Menu.ShowFlag.values:
            raise ValidationError(message="显示标记不合法")
        if self.status not in Menu.Status.values:
            raise ValidationError(message="菜单状态不合法")
        _validate_actions(self.actions)

    def row_fields(self) -> dict[str, Any]:
        """落库字段（不含动作集合）"""
        return {
            "name": self.name,
            "sequence": self.sequence,
            "icon": self.icon,
            "router": self.router,
            "parent_id": self.parent_id,
            "parent_path": self.parent_path,
            "is_show": self.is_show,
            "status": self.status,
            "memo": self.memo,
            "creator": self.creator,
        }


@dataclass
class MenuTreeSchema(BaseSchema[None]):
    """
    初始化数据中的菜单树节点：
    - 与 MenuSchema 相比没有 parent_id，上级由所处层级决定
    - is_show 为 0 表示未指定，按“显示”处理
    """
    label: ClassVar[str] = "菜单树节点"
    auto_validate: ClassVar[bool] = True

    name: str
    icon: str = ""
    router: str = ""
    sequence: int = 0
    is_show: int = 0
    memo: str = ""
    actions: List[MenuActionSchema] = field(default_factory=list)
    children: List["MenuTreeSchema"] = field(default_factory=list)

    def __post_init__(self):
        # YAML 中留空的字段按未填写处理
        for attr, default in (("icon", ""), ("router", ""), ("memo", ""), ("sequence", 0), ("is_show", 0)):
            if getattr(self, attr) is None:
                setattr(self, attr, default)
        self.actions = _coerce_list(self.actions, MenuActionSchema, strict=True)
        self.children = _coerce_list(self.children, MenuTreeSchema, strict=True)
        super().__post_init__()

    def validate(self) -> None:
        _ensure_type(self.name, str, "菜单名称")
        if not self.name.strip():
            raise ValidationError(message="菜单名称不能为空")
        for value, label in ((self.icon, "图标"), (self.router, "访问路由"), (self.memo, "备注")):
            _ensure_type(value, str, label)
        _ensure_type(self.sequence, int, "排序值")
        _ensure_type(self.is_show, int, "显示标记")
        if self.is_show not in (0, *Menu.ShowFlag.values):
            raise ValidationError(message="显示标记不合法")
        for action in self.actions:
            _ensure_type(action.code, str, "动作编号")
            _ensure_type(action.name, str, "动作名称")
        _validate_actions(self.actions)

    def to_menu(self, parent_id: int) -> MenuSchema:
        """转为挂在 parent_id 下的菜单入参：状态固定启用，显示标记仅在显式给出正值时覆盖"""
        return MenuSchema(
            name=self.name,
            parent_id=parent_id,
            sequence=self.sequence,
            icon=self.icon,
            router=self.router,
            memo=self.memo,
            is_show=self.is_show if self.is_show > 0 else Menu.ShowFlag.SHOW,
            status=Menu.Status.ENABLED,
            actions=list(self.actions),
        )

    def count(self) -> int:
        """子树节点总数（含自身）"""
        return 1 + sum(child.count() for child in self.children)


@dataclass
class MenuQueryParam:
    """菜单查询条件，所有条件之间为 AND"""
    ids: List[int] = field(default_factory=list)
    # 精确名称
    name: str = ""
    # 名称模糊查询
    query_value: str = ""
    # None 表示不按上级过滤；0 表示只查根节点
    parent_id: Optional[int] = None
    # 子树查询：上级路径以此开头（按路径段匹配）
    prefix_parent_path: str = ""
    is_show: int = 0
    status: int = 0
    page: PaginationParam = field(default_factory=PaginationParam)


@dataclass
class MenuQueryOptions:
    order_fields: List[str] = field(default_factory=lambda: ["-sequence", "-created_at"])
    # 是否同时加载动作下的资源（按菜单 ID 集合批量查询）
    include_resources: bool = False


@dataclass
class MenuQueryResult(QueryResult[MenuSchema]):
    """查询结果：data 为菜单列表，page_result 仅在分页或计数时存在"""

    def to_tree(self) -> list[dict]:
        return build_menu_tree(self.data)
