# -*- coding: utf-8 -*-
"""
公共模块单测：
- ID 生成器（唯一、单调、时钟回拨、序列号溢出）
- 分页工具
- 业务异常 / 日志 extra / 请求上下文
"""

from __future__ import annotations

import threading

from django.conf import settings
from django.contrib.auth.models import Group
from django.db import DEFAULT_DB_ALIAS
from django.test import SimpleTestCase, TestCase, override_settings

from apps.common.base.trans import TransExecutor
from apps.common.exceptions import BizError, InvalidParentError, NotFoundError, ValidationError
from apps.common.infra.logger import logger_extra
from apps.common.pagination import MAX_PAGE_SIZE, PaginationParam, paginate_queryset
from apps.common.utils.request_context import (
    clear_request_context,
    current_operator,
    get_request_context,
    request_scope,
    set_request_context,
)
from apps.common.utils.snowflake import MAX_SEQUENCE, Snowflake, must_id


class _StepClock:
    """前 limit 次调用返回同一毫秒，之后前进 1 毫秒"""

    def __init__(self, base: int, limit: int):
        self.base = base
        self.limit = limit
        self.calls = 0

    def __call__(self) -> int:
        self.calls += 1
        return self.base if self.calls <= self.limit else self.base + 1


class SnowflakeTests(SimpleTestCase):
    def test_ids_unique_and_increasing(self):
        gen = Snowflake(3)
        ids = [gen.next_id() for _ in range(2000)]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(ids, sorted(ids))
        self.assertTrue(all(i > 0 for i in ids))

    def test_sequence_overflow_waits_next_ms(self):
        base = 1700000000000
        gen = Snowflake(1, clock=_StepClock(base, MAX_SEQUENCE + 2))
        ids = [gen.next_id() for _ in range(MAX_SEQUENCE + 2)]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(ids, sorted(ids))

    def test_clock_going_backwards_keeps_monotonic(self):
        ticks = iter([1700000002000, 1700000001000, 1700000001000])
        gen = Snowflake(1, clock=lambda: next(ticks))
        ids = [gen.next_id() for _ in range(3)]
        self.assertEqual(ids, sorted(ids))
        self.assertEqual(len(set(ids)), 3)

    def test_invalid_node_id(self):
        with self.assertRaises(ValueError):
            Snowflake(1024)

    def test_concurrent_generation(self):
        gen = Snowflake(7)
        results: list[int] = []
        lock = threading.Lock()

        def worker():
            local = [gen.next_id() for _ in range(500)]
            with lock:
                results.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(results), 2000)
        self.assertEqual(len(set(results)), 2000)

    def test_must_id(self):
        self.assertNotEqual(must_id(), must_id())


class PaginationTests(TestCase):
    """基于 contrib.auth 的 Group 表验证分页切分"""

    @classmethod
    def setUpTestData(cls):
        Group.objects.bulk_create([Group(name=f"g{i:02d}") for i in range(25)])

    def _qs(self):
        return Group.objects.order_by("name")

    def test_without_pagination_returns_all(self):
        items, page = paginate_queryset(self._qs(), PaginationParam())
        self.assertEqual(len(items), 25)
        self.assertIsNone(page)

    def test_only_count(self):
        items, page = paginate_queryset(self._qs(), PaginationParam(only_count=True))
        self.assertEqual(items, [])
        self.assertEqual(page.total, 25)

    def test_page_slicing(self):
        items, page = paginate_queryset(self._qs(), PaginationParam(pagination=True, current=3, page_size=10))
        self.assertEqual([g.name for g in items], [f"g{i:02d}" for i in range(20, 25)])
        self.assertEqual((page.total, page.current, page.page_size), (25, 3, 10))

    def test_out_of_range_page_is_empty(self):
        items, page = paginate_queryset(self._qs(), PaginationParam(pagination=True, current=9, page_size=10))
        self.assertEqual(items, [])
        self.assertEqual(page.total, 25)

    def test_page_size_bounds(self):
        self.assertEqual(PaginationParam(page_size=0).normalized_page_size(), 10)
        self.assertEqual(PaginationParam(page_size=10_000).normalized_page_size(), MAX_PAGE_SIZE)


class BizErrorTests(SimpleTestCase):
    def test_defaults_and_override(self):
        err = NotFoundError()
        self.assertEqual((err.code, err.http_status), (40400, 404))
        custom = ValidationError(message="名称不能重复", extra={"parent_id": 0})
        self.assertEqual(str(custom), "[40002] 名称不能重复")
        self.assertEqual(custom.extra, {"parent_id": 0})
        self.assertIsInstance(InvalidParentError(), BizError)

    def test_logger_extra_masks_sensitive_keys(self):
        self.assertEqual(logger_extra({"password": "x", "menu_id": 1}), {"password": "***", "menu_id": 1})
        self.assertEqual(logger_extra(None), {})


class RequestContextTests(SimpleTestCase):
    def test_scope_binds_and_restores(self):
        self.assertEqual(current_operator(), "")
        with request_scope(user_id=42, username="root") as ctx:
            self.assertEqual(ctx["user_id"], 42)
            self.assertTrue(ctx["request_id"])
            self.assertEqual(current_operator(), "42")
        self.assertIsNone(get_request_context()["user_id"])
        with request_scope(username="root"):
            self.assertEqual(current_operator(), "root")

    def test_set_and_clear(self):
        set_request_context(user_id=None, username="ops")
        self.assertEqual(current_operator(), "ops")
        self.assertTrue(get_request_context()["request_id"])
        clear_request_context()
        self.assertEqual(get_request_context(), {"request_id": "", "user_id": None, "username": ""})


class TransExecutorTests(TestCase):
    def test_exec_returns_result(self):
        executor = TransExecutor()
        self.assertEqual(executor.exec(lambda: Group.objects.create(name="ok").name), "ok")

    def test_exec_rolls_back_on_error(self):
        def boom():
            Group.objects.create(name="tmp")
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            TransExecutor().exec(boom)
        self.assertFalse(Group.objects.filter(name="tmp").exists())

    def test_in_transaction_and_alias(self):
        executor = TransExecutor()
        with executor.atomic():
            self.assertTrue(executor.in_transaction())
        self.assertEqual(TransExecutor.no_trans_alias(), DEFAULT_DB_ALIAS)

    def test_no_trans_alias_uses_configured_connection(self):
        databases = {**settings.DATABASES, "no_trans": {**settings.DATABASES["default"], "TEST": {"MIRROR": "default"}}}
        with override_settings(NO_TRANS_DB_ALIAS="no_trans", DATABASES=databases):
            self.assertEqual(TransExecutor.no_trans_alias(), "no_trans")
        # 别名未在 DATABASES 中注册时回退到 default
        with override_settings(NO_TRANS_DB_ALIAS="missing"):
            self.assertEqual(TransExecutor.no_trans_alias(), DEFAULT_DB_ALIAS)
