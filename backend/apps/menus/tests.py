# -*- coding: utf-8 -*-
"""
菜单模块单测：
- 物化路径：创建、移动（后代路径整体重写）、环路拒绝
- 同级重名、删除约束、状态修改
- 动作/资源差异比对与落库
- 查询过滤、分页、组树
- 初始化数据（菜单树、YAML 文件、管理命令）
"""

from __future__ import annotations

import os
import tempfile
from io import StringIO
from unittest import mock

from django.conf import settings
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase

from apps.common.exceptions import InvalidParentError, NotFoundError, ValidationError
from apps.common.pagination import PaginationParam
from apps.common.utils.request_context import request_scope
from apps.menus.diff import compare_actions, compare_resources
from apps.menus.loader import load_menu_trees, parse_menu_trees
from apps.menus.models import Menu, MenuAction, MenuActionResource
from apps.menus.repo import MenuRepo
from apps.menus.schemas import (
    MenuActionResourceSchema,
    MenuActionSchema,
    MenuQueryOptions,
    MenuQueryParam,
    MenuSchema,
    MenuTreeSchema,
)
from apps.menus.services import (
    MenuActionsQueryService,
    MenuCreateService,
    MenuDeleteService,
    MenuGetService,
    MenuInitDataService,
    MenuQueryService,
    MenuStatusUpdateService,
    MenuTreeInitService,
    MenuUpdateService,
)
from apps.menus.tree import build_menu_tree, is_in_subtree, join_parent_path, rewrite_path_prefix


def _action(code: str, name: str, *resources: tuple[str, str]) -> MenuActionSchema:
    return MenuActionSchema(
        code=code,
        name=name,
        resources=[MenuActionResourceSchema(method=m, path=p) for m, p in resources],
    )


def _create(name: str, parent_id: int = 0, **kwargs) -> int:
    return MenuCreateService().execute(MenuSchema(name=name, parent_id=parent_id, **kwargs))


class TreePathTests(SimpleTestCase):
    """路径工具（纯函数）"""

    def test_join_parent_path(self):
        self.assertEqual(join_parent_path("", 5), "5")
        self.assertEqual(join_parent_path("1/2", 5), "1/2/5")

    def test_is_in_subtree_is_segment_safe(self):
        self.assertTrue(is_in_subtree("12", "12"))
        self.assertTrue(is_in_subtree("12/7", "12"))
        self.assertFalse(is_in_subtree("123", "12"))
        self.assertFalse(is_in_subtree("123/7", "12"))

    def test_rewrite_path_prefix_keeps_suffix(self):
        self.assertEqual(rewrite_path_prefix("1/2/3", "1/2", "9/2"), "9/2/3")
        with self.assertRaises(ValueError):
            rewrite_path_prefix("4/5", "1/2", "9/2")


class DiffTests(SimpleTestCase):
    """动作/资源集合比对"""

    def test_identical_sets_produce_empty_diff(self):
        old = [_action("add", "新增", ("POST", "/api/v1/menus")), _action("query", "查询", ("GET", "/api/v1/menus"))]
        new = [_action("query", "查询", ("get", "/api/v1/menus")), _action("add", "新增", ("POST", "/api/v1/menus"))]
        self.assertTrue(compare_actions(old, new).is_empty)
        self.assertTrue(compare_actions([], []).is_empty)

    def test_add_delete_update_by_code(self):
        old = [_action("add", "新增"), _action("del", "删除"), _action("edit", "编辑", ("PUT", "/a"))]
        new = [_action("add", "新增"), _action("edit", "修改", ("PUT", "/a")), _action("query", "查询")]
        diff = compare_actions(old, new)
        self.assertEqual([a.code for a in diff.to_add], ["query"])
        self.assertEqual([a.code for a in diff.to_delete], ["del"])
        self.assertEqual([(o.name, n.name) for o, n in diff.to_update], [("编辑", "修改")])

    def test_resource_change_marks_action_updated(self):
        old = [_action("edit", "编辑", ("GET", "/a"), ("PUT", "/a"))]
        new = [_action("edit", "编辑", ("GET", "/a"), ("PATCH", "/a"))]
        diff = compare_actions(old, new)
        self.assertEqual(len(diff.to_update), 1)

        res_diff = compare_resources(old[0].resources, new[0].resources)
        self.assertEqual([r.key for r in res_diff.to_add], [("PATCH", "/a")])
        self.assertEqual([r.key for r in res_diff.to_delete], [("PUT", "/a")])


class SchemaTests(SimpleTestCase):
    def test_duplicate_action_codes_rejected(self):
        with self.assertRaises(ValidationError):
            MenuSchema(name="菜单", actions=[_action("add", "新增"), _action("add", "再次新增")])

    def test_empty_name_rejected(self):
        with self.assertRaises(ValidationError):
            MenuSchema(name=" ")

    def test_tree_node_defaults(self):
        node = MenuTreeSchema.from_dict({"name": "根", "children": [{"name": "子", "is_show": 2}]}, strict=True)
        self.assertEqual(node.count(), 2)
        root = node.to_menu(0)
        self.assertEqual((root.is_show, root.status), (Menu.ShowFlag.SHOW, Menu.Status.ENABLED))
        child = node.children[0].to_menu(99)
        self.assertEqual((child.parent_id, child.is_show), (99, Menu.ShowFlag.HIDE))


class MenuCreateTests(TestCase):
    def test_paths_follow_parent_chain(self):
        a = _create("A")
        b = _create("B", a)
        c = _create("C", b)
        self.assertEqual(Menu.objects.get(id=a).parent_path, "")
        self.assertEqual(Menu.objects.get(id=b).parent_path, f"{a}")
        self.assertEqual(Menu.objects.get(id=c).parent_path, f"{a}/{b}")

    def test_sibling_name_must_be_unique(self):
        a = _create("A")
        _create("X", a)
        with self.assertRaisesMessage(ValidationError, "名称不能重复"):
            _create("X", a)
        # 不同上级下允许同名
        _create("X")
        self.assertEqual(Menu.objects.filter(name="X").count(), 2)

    def test_missing_parent_rejected(self):
        with self.assertRaises(InvalidParentError):
            _create("孤儿", 123456789)
        self.assertFalse(Menu.objects.exists())

    def test_actions_and_resources_persisted(self):
        menu_id = _create(
            "菜单管理",
            actions=[_action("add", "新增", ("post", " /api/v1/menus ")), _action("query", "查询", ("GET", "/api/v1/menus"))],
        )
        actions = MenuActionsQueryService().execute(menu_id)
        self.assertEqual({a.code for a in actions}, {"add", "query"})
        add = next(a for a in actions if a.code == "add")
        self.assertEqual([r.key for r in add.resources], [("POST", "/api/v1/menus")])
        self.assertTrue(all(a.menu_id == menu_id for a in actions))

    def test_creator_taken_from_request_context(self):
        with request_scope(user_id=7, username="root"):
            menu_id = _create("A")
        self.assertEqual(Menu.objects.get(id=menu_id).creator, "7")


class MenuUpdateTests(TestCase):
    def setUp(self):
        self.a = _create("A")
        self.b = _create("B", self.a, actions=[_action("query", "查询", ("GET", "/b"))])
        self.c = _create("C", self.b)
        self.e = _create("E", self.c)
        self.d = _create("D")

    def _schema(self, menu_id: int, **changes) -> MenuSchema:
        current = MenuGetService().execute(menu_id)
        payload = current.to_dict(exclude={"id", "parent_path", "creator", "created_at", "updated_at"})
        payload.update(changes)
        return MenuSchema.from_dict(payload)

    def test_move_rewrites_descendant_paths(self):
        MenuUpdateService().execute(self.b, self._schema(self.b, parent_id=self.d))

        self.assertEqual(Menu.objects.get(id=self.b).parent_path, f"{self.d}")
        self.assertEqual(Menu.objects.get(id=self.c).parent_path, f"{self.d}/{self.b}")
        self.assertEqual(Menu.objects.get(id=self.e).parent_path, f"{self.d}/{self.b}/{self.c}")
        # 原上级子树不再包含被移动的节点
        self.assertEqual(MenuRepo().list_subtree(f"{self.a}"), [])

    def test_move_to_root(self):
        MenuUpdateService().execute(self.c, self._schema(self.c, parent_id=0))
        self.assertEqual(Menu.objects.get(id=self.c).parent_path, "")
        self.assertEqual(Menu.objects.get(id=self.e).parent_path, f"{self.c}")

    def test_invalid_parents_rejected(self):
        service = MenuUpdateService()
        with self.assertRaises(InvalidParentError):
            service.execute(self.b, self._schema(self.b, parent_id=self.b))
        with self.assertRaises(InvalidParentError):
            service.execute(self.b, self._schema(self.b, parent_id=987654321))
        with self.assertRaises(InvalidParentError):
            service.execute(self.a, self._schema(self.a, parent_id=self.e))
        self.assertEqual(Menu.objects.get(id=self.a).parent_path, "")

    def test_rename_checks_siblings(self):
        _create("F", self.a)
        with self.assertRaisesMessage(ValidationError, "名称不能重复"):
            MenuUpdateService().execute(self.b, self._schema(self.b, name="F"))
        # 名称不变时不做重名检查
        MenuUpdateService().execute(self.b, self._schema(self.b, memo="备注"))
        self.assertEqual(Menu.objects.get(id=self.b).memo, "备注")

    def test_creator_and_created_at_preserved(self):
        before = Menu.objects.get(id=self.b)
        Menu.objects.filter(id=self.b).update(creator="origin")
        with request_scope(user_id=99):
            MenuUpdateService().execute(self.b, self._schema(self.b, name="B2"))
        after = Menu.objects.get(id=self.b)
        self.assertEqual(after.name, "B2")
        self.assertEqual(after.creator, "origin")
        self.assertEqual(after.created_at, before.created_at)

    def test_failed_update_rolls_back_actions_and_paths(self):
        schema = self._schema(
            self.b,
            parent_id=self.d,
            actions=[_action("query", "查询", ("GET", "/b")), _action("add", "新增", ("POST", "/b"))],
        )
        # 动作差异与后代路径重写都已执行，写菜单行时失败
        with mock.patch.object(MenuRepo, "update", side_effect=RuntimeError("写入失败")):
            with self.assertRaises(RuntimeError):
                MenuUpdateService().execute(self.b, schema)

        self.assertEqual(Menu.objects.get(id=self.b).parent_path, f"{self.a}")
        self.assertEqual(Menu.objects.get(id=self.c).parent_path, f"{self.a}/{self.b}")
        self.assertEqual(Menu.objects.get(id=self.e).parent_path, f"{self.a}/{self.b}/{self.c}")
        self.assertEqual(list(MenuAction.objects.filter(menu_id=self.b).values_list("code", flat=True)), ["query"])

    def test_update_unknown_menu(self):
        with self.assertRaises(NotFoundError):
            MenuUpdateService().execute(123, MenuSchema(name="X"))

    def test_actions_reconciled(self):
        old_action = MenuAction.objects.get(menu_id=self.b, code="query")
        schema = self._schema(
            self.b,
            actions=[
                _action("query", "列表", ("GET", "/b"), ("GET", "/b/:id")),
                _action("add", "新增", ("POST", "/b")),
            ],
        )
        MenuUpdateService().execute(self.b, schema)

        actions = {a.code: a for a in MenuActionsQueryService().execute(self.b)}
        self.assertEqual(set(actions), {"query", "add"})
        # 已有动作保留原 ID，仅更新名称与资源
        self.assertEqual(actions["query"].id, old_action.id)
        self.assertEqual(actions["query"].name, "列表")
        self.assertEqual({r.key for r in actions["query"].resources}, {("GET", "/b"), ("GET", "/b/:id")})

        MenuUpdateService().execute(self.b, self._schema(self.b, actions=[]))
        self.assertFalse(MenuAction.objects.filter(menu_id=self.b).exists())
        self.assertFalse(MenuActionResource.objects.filter(action_id=old_action.id).exists())

    def test_unchanged_actions_keep_rows(self):
        resource_ids = set(MenuActionResource.objects.values_list("id", flat=True))
        MenuUpdateService().execute(self.b, self._schema(self.b))
        self.assertEqual(set(MenuActionResource.objects.values_list("id", flat=True)), resource_ids)


class MenuDeleteTests(TestCase):
    def test_delete_non_leaf_rejected(self):
        a = _create("A")
        _create("B", a)
        with self.assertRaises(ValidationError):
            MenuDeleteService().execute(a)
        self.assertTrue(Menu.objects.filter(id=a).exists())

    def test_delete_leaf_removes_actions_and_resources(self):
        a = _create("A", actions=[_action("query", "查询", ("GET", "/a"))])
        keep = _create("K", actions=[_action("query", "查询", ("GET", "/k"))])
        MenuDeleteService().execute(a)

        self.assertFalse(Menu.objects.filter(id=a).exists())
        self.assertFalse(MenuAction.objects.filter(menu_id=a).exists())
        self.assertEqual(list(MenuActionResource.objects.values_list("path", flat=True)), ["/k"])
        self.assertTrue(MenuAction.objects.filter(menu_id=keep).exists())

    def test_delete_unknown_menu(self):
        with self.assertRaises(NotFoundError):
            MenuDeleteService().execute(42)


class MenuStatusTests(TestCase):
    def test_status_update_and_noop(self):
        menu_id = _create("A")
        MenuStatusUpdateService().execute(menu_id, Menu.Status.DISABLED)
        menu = Menu.objects.get(id=menu_id)
        self.assertEqual(menu.status, Menu.Status.DISABLED)

        MenuStatusUpdateService().execute(menu_id, Menu.Status.DISABLED)
        self.assertEqual(Menu.objects.get(id=menu_id).updated_at, menu.updated_at)

    def test_invalid_status_and_unknown_menu(self):
        menu_id = _create("A")
        with self.assertRaises(ValidationError):
            MenuStatusUpdateService().execute(menu_id, 3)
        with self.assertRaises(NotFoundError):
            MenuStatusUpdateService().execute(42, Menu.Status.ENABLED)


class MenuQueryTests(TestCase):
    def setUp(self):
        self.root = _create("系统管理", sequence=9, actions=[_action("query", "查询", ("GET", "/sys"))])
        self.menu = _create("菜单管理", self.root, sequence=3)
        self.user = _create("用户管理", self.root, sequence=2, status=Menu.Status.DISABLED)
        self.home = _create("首页", sequence=1, is_show=Menu.ShowFlag.HIDE)

    def _query(self, options=None, **params):
        return MenuQueryService().execute(MenuQueryParam(**params), options)

    def test_filters(self):
        self.assertEqual([m.id for m in self._query(parent_id=0).data], [self.root, self.home])
        self.assertEqual([m.id for m in self._query(query_value="管理").data], [self.root, self.menu, self.user])
        self.assertEqual([m.id for m in self._query(name="首页").data], [self.home])
        self.assertEqual([m.id for m in self._query(status=Menu.Status.DISABLED).data], [self.user])
        self.assertEqual([m.id for m in self._query(is_show=Menu.ShowFlag.HIDE).data], [self.home])
        self.assertEqual([m.id for m in self._query(ids=[self.menu, self.home]).data], [self.menu, self.home])
        self.assertEqual([m.id for m in self._query(prefix_parent_path=str(self.root)).data], [self.menu, self.user])

    def test_prefix_match_is_segment_safe(self):
        Menu.objects.create(id=12, name="p12")
        Menu.objects.create(id=123, name="p123")
        Menu.objects.create(id=1201, name="c12", parent_id=12, parent_path="12")
        Menu.objects.create(id=12301, name="c123", parent_id=123, parent_path="123")
        self.assertEqual([m.id for m in self._query(prefix_parent_path="12").data], [1201])

    def test_pagination_and_count(self):
        page = self._query(page=PaginationParam(pagination=True, current=2, page_size=3))
        self.assertEqual([m.id for m in page.data], [self.home])
        self.assertEqual((page.page_result.total, page.page_result.current), (4, 2))

        count = self._query(page=PaginationParam(only_count=True))
        self.assertEqual(count.data, [])
        self.assertEqual(count.page_result.total, 4)

    def test_actions_joined_and_resources_optional(self):
        data = self._query(ids=[self.root]).data
        self.assertEqual([a.code for a in data[0].actions], ["query"])
        self.assertEqual(data[0].actions[0].resources, [])

        data = self._query(MenuQueryOptions(include_resources=True), ids=[self.root]).data
        self.assertEqual([r.key for r in data[0].actions[0].resources], [("GET", "/sys")])

    def test_to_tree(self):
        tree = self._query().to_tree()
        self.assertEqual([n["id"] for n in tree], [self.root, self.home])
        self.assertEqual([n["id"] for n in tree[0]["children"]], [self.menu, self.user])

    def test_build_tree_treats_orphans_as_roots(self):
        data = self._query(prefix_parent_path=str(self.root)).data
        self.assertEqual([n["id"] for n in build_menu_tree(data)], [self.menu, self.user])

    def test_get_unknown_menu(self):
        with self.assertRaises(NotFoundError):
            MenuGetService().execute(42)
        self.assertEqual(MenuActionsQueryService().execute(42), [])


SAMPLE_TREE = [
    {
        "name": "系统管理",
        "sequence": 9,
        "children": [
            {"name": "菜单管理", "router": "/system/menu", "actions": [{"code": "add", "name": "新增"}]},
            {"name": "角色管理", "router": "/system/role", "is_show": 2},
        ],
    },
    {"name": "首页", "router": "/dashboard"},
]


class MenuInitTests(TestCase):
    def test_tree_init_creates_nested_menus(self):
        ids = MenuTreeInitService().execute(parse_menu_trees(SAMPLE_TREE))
        self.assertEqual(len(ids), 4)

        root = Menu.objects.get(name="系统管理")
        menu = Menu.objects.get(name="菜单管理")
        role = Menu.objects.get(name="角色管理")
        self.assertEqual((menu.parent_id, menu.parent_path), (root.id, str(root.id)))
        self.assertEqual(role.is_show, Menu.ShowFlag.HIDE)
        self.assertTrue(all(m.status == Menu.Status.ENABLED for m in Menu.objects.all()))
        self.assertTrue(MenuAction.objects.filter(menu_id=menu.id, code="add").exists())

    def test_tree_init_skipped_when_menus_exist(self):
        _create("已有菜单")
        self.assertEqual(MenuTreeInitService().execute(parse_menu_trees(SAMPLE_TREE)), [])
        self.assertEqual(Menu.objects.count(), 1)

    def test_tree_init_rolls_back_on_failure(self):
        trees = parse_menu_trees([{"name": "根", "children": [{"name": "重复"}, {"name": "重复"}]}])
        with self.assertRaises(ValidationError):
            MenuTreeInitService().execute(trees)
        self.assertFalse(Menu.objects.exists())
        self.assertFalse(MenuAction.objects.exists())

    def test_parse_rejects_bad_payload(self):
        with self.assertRaises(ValidationError):
            parse_menu_trees({"name": "不是列表"})
        with self.assertRaises(ValidationError):
            parse_menu_trees([{"name": "根", "unknown": 1}])
        with self.assertRaises(ValidationError):
            parse_menu_trees([{"name": "根", "children": [{"icon": "缺少名称"}]}])
        # 动作、资源中的未知字段同样拒绝
        with self.assertRaises(ValidationError):
            parse_menu_trees([{"name": "根", "actions": [{"code": "add", "name": "新增", "resource": []}]}])
        with self.assertRaises(ValidationError):
            parse_menu_trees(
                [{"name": "根", "actions": [{"code": "add", "name": "新增", "resources": [{"method": "GET", "url": "/a"}]}]}]
            )
        self.assertEqual(parse_menu_trees(None), [])

    def test_parse_rejects_wrong_value_types(self):
        bad_nodes = [
            {"name": "根", "is_show": "2"},
            {"name": "根", "is_show": 5},
            {"name": "根", "sequence": "1"},
            {"name": "根", "sequence": True},
            {"name": 123},
            {"name": "根", "router": ["/a"]},
            {"name": "根", "actions": [{"code": 1, "name": "新增"}]},
        ]
        for node in bad_nodes:
            with self.subTest(node=node):
                with self.assertRaises(ValidationError):
                    parse_menu_trees([node])

    def test_parse_treats_blank_fields_as_defaults(self):
        trees = parse_menu_trees([{"name": "根", "icon": None, "sequence": None, "is_show": None, "children": None}])
        self.assertEqual((trees[0].icon, trees[0].sequence, trees[0].is_show, trees[0].children), ("", 0, 0, []))

    def test_init_menus_command_reports_bad_data(self):
        with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False, encoding="utf-8") as fh:
            fh.write("- name: 首页\n  is_show: \"2\"\n")
            path = fh.name
        self.addCleanup(os.remove, path)

        with self.assertRaises(CommandError):
            call_command("init_menus", "--file", path, stdout=StringIO())
        self.assertFalse(Menu.objects.exists())

    def test_data_file_checks_existing_menus_once(self):
        with mock.patch.object(MenuRepo, "has_any", autospec=True, return_value=False) as has_any:
            self.assertEqual(MenuInitDataService().execute(settings.MENU_DATA_FILE), 5)
        self.assertEqual(has_any.call_count, 1)

    def test_bundled_data_file_loads(self):
        trees = load_menu_trees(settings.MENU_DATA_FILE)
        self.assertEqual(sum(t.count() for t in trees), 5)
        self.assertEqual(MenuInitDataService().execute(settings.MENU_DATA_FILE), 5)
        self.assertEqual(MenuInitDataService().execute(settings.MENU_DATA_FILE), 0)

    def test_init_menus_command(self):
        with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False, encoding="utf-8") as fh:
            fh.write("- name: 首页\n  router: /dashboard\n- name: 系统管理\n  children:\n    - name: 菜单管理\n")
            path = fh.name
        self.addCleanup(os.remove, path)

        out = StringIO()
        call_command("init_menus", "--file", path, stdout=out)
        self.assertIn("3", out.getvalue())
        self.assertEqual(Menu.objects.count(), 3)
        self.assertEqual(Menu.objects.get(name="菜单管理").parent_path, str(Menu.objects.get(name="系统管理").id))
