# apps/menus/services.py

from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List

from apps.common.base.base_service import BaseService
from apps.common.base.trans import TransExecutor
from apps.common.exceptions import InvalidParentError, NotFoundError, ValidationError
from apps.common.infra.logger import get_logger, logger_extra
from apps.common.utils.request_context import current_operator
from apps.common.utils.snowflake import must_id

from .diff import compare_actions, compare_resources
from .loader import load_menu_trees
from .models import Menu, MenuAction, MenuActionResource
from .repo import MenuActionRepo, MenuActionResourceRepo, MenuRepo
from .schemas import (
    MenuActionResourceSchema,
    MenuActionSchema,
    MenuQueryOptions,
    MenuQueryParam,
    MenuQueryResult,
    MenuSchema,
    MenuTreeSchema,
)
from .tree import is_in_subtree, join_parent_path, rewrite_path_prefix

logger = get_logger(__name__)


# ------------------------
# 转换工具
# ------------------------

def _resource_schema(row: MenuActionResource) -> MenuActionResourceSchema:
    return MenuActionResourceSchema(id=row.id, action_id=row.action_id, method=row.method, path=row.path)


def _action_schemas(
        actions: Iterable[MenuAction],
        resources: Iterable[MenuActionResource] = (),
) -> Dict[int, List[MenuActionSchema]]:
    """按菜单 ID 分组动作，并把资源挂到各自的动作上（内存中关联）"""
    resources_by_action: Dict[int, List[MenuActionResourceSchema]] = defaultdict(list)
    for res in resources:
        resources_by_action[res.action_id].append(_resource_schema(res))

    grouped: Dict[int, List[MenuActionSchema]] = defaultdict(list)
    for action in actions:
        grouped[action.menu_id].append(
            MenuActionSchema(
                id=action.id,
                menu_id=action.menu_id,
                code=action.code,
                name=action.name,
                resources=resources_by_action.get(action.id, []),
            )
        )
    return grouped


def _menu_schema(menu: Menu, actions: List[MenuActionSchema] | None = None) -> MenuSchema:
    return MenuSchema.from_model(menu, extra={"actions": actions or []})


class MenuContextService:
    """
    菜单上下文服务：菜单获取、同级重名检查、上级路径解析、动作写入，
    供各个菜单服务复用
    """

    def __init__(
            self,
            menu_repo: MenuRepo | None = None,
            action_repo: MenuActionRepo | None = None,
            resource_repo: MenuActionResourceRepo | None = None,
    ):
        self.menu_repo = menu_repo or MenuRepo()
        self.action_repo = action_repo or MenuActionRepo()
        self.resource_repo = resource_repo or MenuActionResourceRepo()

    def get_menu(self, menu_id: int) -> Menu:
        menu = self.menu_repo.get(menu_id)
        if menu is None:
            raise NotFoundError(message="菜单不存在", extra={"menu_id": menu_id})
        return menu

    def load_actions(self, menu_id: int) -> List[MenuActionSchema]:
        """菜单下的动作及其资源：先查动作，再按动作 ID 集合批量查资源"""
        actions = self.action_repo.list_by_menu(menu_id)
        resources = self.resource_repo.list_by_action_ids(a.id for a in actions)
        return _action_schemas(actions, resources).get(menu_id, [])

    def ensure_unique_name(self, *, parent_id: int, name: str) -> None:
        if self.menu_repo.exists_sibling_name(parent_id=parent_id, name=name):
            raise ValidationError(message="名称不能重复", extra={"parent_id": parent_id, "name": name})

    def resolve_parent_path(self, parent_id: int) -> str:
        """新节点挂在 parent_id 下时应写入的上级路径；根节点为空串"""
        if not parent_id:
            return ""
        parent = self.menu_repo.get(parent_id)
        if parent is None:
            raise InvalidParentError(message="上级菜单不存在", extra={"parent_id": parent_id})
        return join_parent_path(parent.parent_path, parent.id)

    def create_resources(self, action_id: int, resources: Iterable[MenuActionResourceSchema]) -> int:
        rows = [
            {"id": must_id(), "action_id": action_id, "method": res.method, "path": res.path}
            for res in resources
        ]
        if rows:
            self.resource_repo.bulk_create(rows)
        return len(rows)

    def create_actions(self, menu_id: int, actions: Iterable[MenuActionSchema]) -> int:
        """为菜单写入动作及其资源，ID 统一由发号器生成"""
        count = 0
        for item in actions:
            action = self.action_repo.create({"id": must_id(), "menu_id": menu_id, "code": item.code, "name": item.name})
            self.create_resources(action.id, item.resources)
            count += 1
        return count

    def delete_action(self, action_id: int) -> None:
        self.resource_repo.delete_by_action_id(action_id)
        self.action_repo.delete_by_id(action_id)


# ------------------------
# 查询
# ------------------------

class MenuQueryService(BaseService[MenuQueryResult]):
    """
    菜单条件查询：
    - 条件之间为 AND，支持分页/仅计数
    - 动作按菜单 ID 关联；include_resources 时按菜单 ID 集合一次性加载资源
    """

    atomic_enabled = False

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()

    def perform(
            self,
            params: MenuQueryParam | None = None,
            options: MenuQueryOptions | None = None,
    ) -> MenuQueryResult:
        params = params or MenuQueryParam()
        options = options or MenuQueryOptions()

        qs = self.ctx.menu_repo.build_query(
            ids=params.ids,
            name=params.name,
            query_value=params.query_value,
            parent_id=params.parent_id,
            prefix_parent_path=params.prefix_parent_path,
            is_show=params.is_show,
            status=params.status,
            order_fields=options.order_fields,
        )
        rows, page_result = self.ctx.menu_repo.paginate(qs, params.page)
        if not rows:
            return MenuQueryResult(data=[], page_result=page_result)

        actions = self.ctx.action_repo.list_all()
        resources: List[MenuActionResource] = []
        if options.include_resources:
            resources = self.ctx.resource_repo.list_by_menu_ids(row.id for row in rows)
        grouped = _action_schemas(actions, resources)

        data = [_menu_schema(row, grouped.get(row.id, [])) for row in rows]
        return MenuQueryResult(data=data, page_result=page_result)


class MenuGetService(BaseService[MenuSchema]):
    """按 ID 获取单个菜单，附带动作及资源"""

    atomic_enabled = False

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()

    def perform(self, menu_id: int) -> MenuSchema:
        menu = self.ctx.get_menu(menu_id)
        return _menu_schema(menu, self.ctx.load_actions(menu_id))


class MenuActionsQueryService(BaseService[List[MenuActionSchema]]):
    """菜单下的全部动作（含资源）；菜单不存在时返回空列表"""

    atomic_enabled = False

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()

    def perform(self, menu_id: int) -> List[MenuActionSchema]:
        return self.ctx.load_actions(menu_id)


# ------------------------
# 写入
# ------------------------

class MenuCreateService(BaseService[int]):
    """
    创建菜单：
    - 同级名称唯一、上级存在（事务外检查）
    - 生成 ID，计算上级路径，事务内写入动作、资源与菜单行
    """

    atomic_enabled = False

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()

    def perform(self, schema: MenuSchema) -> int:
        self.ctx.ensure_unique_name(parent_id=schema.parent_id, name=schema.name)
        parent_path = self.ctx.resolve_parent_path(schema.parent_id)

        menu_id = must_id()
        row = schema.row_fields()
        row.update(id=menu_id, parent_path=parent_path, creator=schema.creator or current_operator())

        with self.atomic():
            self.ctx.create_actions(menu_id, schema.actions)
            self.ctx.menu_repo.create(row)

        logger.info(
            "创建菜单",
            extra=logger_extra({"menu_id": menu_id, "menu_name": schema.name, "parent_id": schema.parent_id}),
        )
        return menu_id


class MenuUpdateService(BaseService[None]):
    """
    更新菜单：
    - 上级不能是自身、不能是自身子树中的节点
    - 名称变更时检查同级重名
    - 创建人与创建时间保持原值
    - 事务内：比对并落库动作/资源差异 -> 上级变更时重写全部后代路径 -> 更新菜单行
    """

    atomic_enabled = False

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()

    def perform(self, menu_id: int, schema: MenuSchema) -> None:
        if menu_id == schema.parent_id:
            raise InvalidParentError(message="上级菜单不能是自身", extra={"menu_id": menu_id})

        old = MenuGetService(self.ctx).perform(menu_id)
        if old.name != schema.name:
            self.ctx.ensure_unique_name(parent_id=schema.parent_id, name=schema.name)

        schema.id = old.id
        schema.creator = old.creator
        schema.created_at = old.created_at

        parent_changed = old.parent_id != schema.parent_id
        if parent_changed:
            schema.parent_path = self.ctx.resolve_parent_path(schema.parent_id)
            if is_in_subtree(schema.parent_path, join_parent_path(old.parent_path, old.id)):
                raise InvalidParentError(
                    message="上级菜单不能是自身的下级菜单",
                    extra={"menu_id": menu_id, "parent_id": schema.parent_id},
                )
        else:
            schema.parent_path = old.parent_path

        with self.atomic():
            self._update_actions(menu_id, old.actions, schema.actions)
            if parent_changed:
                self._update_child_parent_path(old, schema)
            self.ctx.menu_repo.update(menu_id, schema.row_fields())

        logger.info(
            "更新菜单",
            extra=logger_extra({"menu_id": menu_id, "menu_name": schema.name, "parent_id": schema.parent_id}),
        )

    def _update_actions(
            self,
            menu_id: int,
            old_actions: List[MenuActionSchema],
            new_actions: List[MenuActionSchema],
    ) -> None:
        diff = compare_actions(old_actions, new_actions)
        if diff.is_empty:
            return

        self.ctx.create_actions(menu_id, diff.to_add)
        for item in diff.to_delete:
            self.ctx.delete_action(item.id)
        for old_item, new_item in diff.to_update:
            if old_item.name != new_item.name:
                self.ctx.action_repo.update_name(old_item.id, new_item.name)
            res_diff = compare_resources(old_item.resources, new_item.resources)
            self.ctx.create_resources(old_item.id, res_diff.to_add)
            for res in res_diff.to_delete:
                self.ctx.resource_repo.delete_by_id(res.id)

        logger.info(
            "更新菜单动作",
            extra=logger_extra({
                "menu_id": menu_id,
                "added": len(diff.to_add),
                "deleted": len(diff.to_delete),
                "updated": len(diff.to_update),
            }),
        )

    def _update_child_parent_path(self, old: MenuSchema, new: MenuSchema) -> None:
        """后代路径前缀由旧完整路径替换为新完整路径，其后的路径段不变"""
        old_full = join_parent_path(old.parent_path, old.id)
        new_full = join_parent_path(new.parent_path, new.id)

        # 后代集合在事务外读取：本事务尚未修改任何菜单行的路径
        children = self.ctx.menu_repo.list_subtree(old_full, using=TransExecutor.no_trans_alias())
        for child in children:
            self.ctx.menu_repo.update_parent_path(child.id, rewrite_path_prefix(child.parent_path, old_full, new_full))

        if children:
            logger.info(
                "重写下级菜单路径",
                extra=logger_extra({"menu_id": old.id, "count": len(children), "new_path": new_full}),
            )


class MenuDeleteService(BaseService[None]):
    """删除菜单：仅允许删除叶子节点，资源、动作、菜单行在同一事务内删除"""

    atomic_enabled = False

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()

    def perform(self, menu_id: int) -> None:
        menu = self.ctx.get_menu(menu_id)
        if self.ctx.menu_repo.count_children(menu_id) > 0:
            raise ValidationError(message="含有子级，不能删除", extra={"menu_id": menu_id})

        with self.atomic():
            self.ctx.resource_repo.delete_by_menu_id(menu_id)
            self.ctx.action_repo.delete_by_menu_id(menu_id)
            self.ctx.menu_repo.delete_by_id(menu_id)

        logger.info("删除菜单", extra=logger_extra({"menu_id": menu_id, "menu_name": menu.name}))


class MenuStatusUpdateService(BaseService[None]):
    """修改菜单状态，目标状态与当前一致时不做任何写入"""

    atomic_enabled = False

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()

    def validate(self, menu_id: int, status: int) -> None:
        if status not in Menu.Status.values:
            raise ValidationError(message="菜单状态不合法", extra={"status": status})

    def perform(self, menu_id: int, status: int) -> None:
        menu = self.ctx.get_menu(menu_id)
        if menu.status == status:
            return
        self.ctx.menu_repo.update_status(menu_id, status)
        logger.info("修改菜单状态", extra=logger_extra({"menu_id": menu_id, "status": status}))


# ------------------------
# 初始化
# ------------------------

class MenuTreeInitService(BaseService[List[int]]):
    """
    按嵌套菜单树批量创建（整体单事务）：
    - only_if_empty 时仅在菜单表为空时执行，否则直接跳过
    - 每个节点以上一层新建菜单的 ID 作为上级；任一节点失败则全部回滚
    """

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()
        self.create_service = MenuCreateService(self.ctx)

    def perform(self, trees: List[MenuTreeSchema], parent_id: int = 0, *, only_if_empty: bool = True) -> List[int]:
        if only_if_empty and self.ctx.menu_repo.has_any():
            logger.info("菜单数据已存在，跳过初始化")
            return []
        created: List[int] = []
        self._create_level(trees, parent_id, created)
        logger.info("初始化菜单数据", extra=logger_extra({"count": len(created)}))
        return created

    def _create_level(self, trees: List[MenuTreeSchema], parent_id: int, created: List[int]) -> None:
        for item in trees:
            menu_id = self.create_service.perform(item.to_menu(parent_id))
            created.append(menu_id)
            if item.children:
                self._create_level(item.children, menu_id, created)


class MenuInitDataService(BaseService[int]):
    """从初始化数据文件加载菜单树；菜单表非空时不读取文件，返回创建数量"""

    atomic_enabled = False

    def __init__(self, ctx: MenuContextService | None = None):
        self.ctx = ctx or MenuContextService()

    def perform(self, data_file: str | Path) -> int:
        if self.ctx.menu_repo.has_any():
            logger.info("菜单数据已存在，跳过初始化", extra=logger_extra({"data_file": str(data_file)}))
            return 0
        trees = load_menu_trees(data_file)
        # 菜单表已确认为空
        return len(MenuTreeInitService(self.ctx).execute(trees, only_if_empty=False))
