"""
菜单初始化数据加载：从 YAML（兼容 JSON）文件读取菜单树

文件结构示例：
    - name: 系统管理
      icon: setting
      sequence: 9
      children:
        - name: 菜单管理
          router: /system/menu
          actions:
            - code: add
              name: 新增
              resources:
                - method: POST
                  path: /api/v1/menus
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from apps.common.exceptions import ValidationError
from apps.menus.schemas import MenuTreeSchema


def parse_menu_trees(data: Any) -> list[MenuTreeSchema]:
    """将已解析的数据结构转为菜单树；未知字段/缺少必填字段视为数据错误"""
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValidationError(message="菜单初始化数据顶层必须是列表")
    try:
        return [MenuTreeSchema.from_dict(item, strict=True) for item in data]
    except (TypeError, ValueError, AttributeError) as exc:
        raise ValidationError(message=f"菜单初始化数据格式错误：{exc}") from exc


def load_menu_trees(path: str | Path) -> list[MenuTreeSchema]:
    with open(path, encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ValidationError(message=f"菜单初始化文件解析失败：{exc}") from exc
    return parse_menu_trees(data)
