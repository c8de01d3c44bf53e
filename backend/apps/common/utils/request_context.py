"""
请求上下文：基于 contextvars 保存当前调用链的操作者信息

- 每个外部调用各自持有一份上下文，互不干扰
- 日志格式化器与服务层（写入 creator 审计字段）从这里读取
"""

from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

request_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
user_id_ctx: contextvars.ContextVar[Optional[int]] = contextvars.ContextVar("user_id", default=None)
username_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("username", default="")


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


def set_request_context(
    *,
    request_id: Optional[str] = None,
    user_id: Optional[int] = None,
    username: str = "",
) -> None:
    request_id_ctx.set(request_id or generate_request_id())
    user_id_ctx.set(user_id)
    username_ctx.set(username or "")


def clear_request_context() -> None:
    request_id_ctx.set("")
    user_id_ctx.set(None)
    username_ctx.set("")


def get_request_context() -> dict:
    return {
        "request_id": request_id_ctx.get(""),
        "user_id": user_id_ctx.get(None),
        "username": username_ctx.get(""),
    }


@contextmanager
def request_scope(*, user_id: Optional[int] = None, username: str = "", request_id: Optional[str] = None) -> Iterator[dict]:
    """
    在 with 块内绑定操作者信息，退出时恢复进入前的值

        with request_scope(user_id=1, username="root"):
            MenuCreateService().execute(schema)
    """
    tokens = (
        request_id_ctx.set(request_id or generate_request_id()),
        user_id_ctx.set(user_id),
        username_ctx.set(username or ""),
    )
    try:
        yield get_request_context()
    finally:
        request_id_ctx.reset(tokens[0])
        user_id_ctx.reset(tokens[1])
        username_ctx.reset(tokens[2])


def current_operator() -> str:
    """返回当前操作者标识（用户 ID 优先，其次用户名），未绑定时为空串"""
    user_id = user_id_ctx.get(None)
    if user_id is not None:
        return str(user_id)
    return username_ctx.get("")
