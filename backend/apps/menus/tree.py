"""
物化路径与树形结构工具（纯函数，不访问数据库）
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

PATH_SEP = "/"


def join_parent_path(parent_path: str, menu_id: int) -> str:
    """拼接节点的完整路径：上级路径为空时直接返回自身 ID"""
    if parent_path:
        return f"{parent_path}{PATH_SEP}{menu_id}"
    return str(menu_id)


def is_in_subtree(path: str, root_full_path: str) -> bool:
    """path 是否位于以 root_full_path 为完整路径的节点子树内（按路径段匹配）"""
    return path == root_full_path or path.startswith(root_full_path + PATH_SEP)


def rewrite_path_prefix(path: str, old_prefix: str, new_prefix: str) -> str:
    """将 path 开头的 old_prefix 替换为 new_prefix，后缀保持不变"""
    if not path.startswith(old_prefix):
        raise ValueError(f"路径 {path!r} 不以 {old_prefix!r} 开头")
    return new_prefix + path[len(old_prefix):]


def build_menu_tree(menus: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    将扁平菜单列表组装为树：
    - 上级不在列表中的节点视为根（适用于子树查询结果）
    - 保持输入顺序，调用方负责排序
    """
    nodes: Dict[int, Dict[str, Any]] = {}
    ordered: List[Dict[str, Any]] = []
    for menu in menus:
        node = menu.to_dict()
        node["children"] = []
        nodes[node["id"]] = node
        ordered.append(node)

    roots: List[Dict[str, Any]] = []
    for node in ordered:
        parent = nodes.get(node["parent_id"])
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent["children"].append(node)
    return roots
