"""
菜单动作/资源集合比对

- 动作以 code 为身份键，得到 新增 / 删除 / 更新 三组；名称与资源都没变的动作不进入更新组
- 资源以 (method, path) 为身份键，只有 新增 / 删除 两组（资源行只有身份字段）
- 每次比对临时构建字典，线性复杂度；同一集合内键重复时后出现者生效
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from apps.menus.schemas import MenuActionResourceSchema, MenuActionSchema


@dataclass
class ActionDiff:
    to_add: List[MenuActionSchema] = field(default_factory=list)
    to_delete: List[MenuActionSchema] = field(default_factory=list)
    # (旧动作, 新动作)：旧动作携带数据库 ID 与现有资源
    to_update: List[Tuple[MenuActionSchema, MenuActionSchema]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_delete or self.to_update)


@dataclass
class ResourceDiff:
    to_add: List[MenuActionResourceSchema] = field(default_factory=list)
    to_delete: List[MenuActionResourceSchema] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_delete)


def _action_changed(old: MenuActionSchema, new: MenuActionSchema) -> bool:
    """code 相同的两个动作是否需要落库：只看名称与资源集合，其余字段不参与比对"""
    if old.name != new.name:
        return True
    return not compare_resources(old.resources, new.resources).is_empty


def compare_actions(old: Iterable[MenuActionSchema], new: Iterable[MenuActionSchema]) -> ActionDiff:
    old_map = {item.code: item for item in old or []}
    new_map = {item.code: item for item in new or []}

    diff = ActionDiff()
    for code, item in new_map.items():
        old_item = old_map.pop(code, None)
        if old_item is None:
            diff.to_add.append(item)
        elif _action_changed(old_item, item):
            diff.to_update.append((old_item, item))
    # 剩下的旧动作在新集合中已不存在
    diff.to_delete.extend(old_map.values())
    return diff


def compare_resources(
        old: Iterable[MenuActionResourceSchema],
        new: Iterable[MenuActionResourceSchema],
) -> ResourceDiff:
    old_map = {item.key: item for item in old or []}
    new_map = {item.key: item for item in new or []}

    diff = ResourceDiff()
    for key, item in new_map.items():
        if old_map.pop(key, None) is None:
            diff.to_add.append(item)
    diff.to_delete.extend(old_map.values())
    return diff
