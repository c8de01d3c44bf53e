"""
日志封装：提供统一的日志记录器

- 通过 settings.LOG_PATH 配置文件输出目录
- 自动轮转日志文件（按日期）
- 自动注入请求上下文（request_id、user_id、username）
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from django.conf import settings as django_settings

_configured = False


class PlainContextFormatter(logging.Formatter):
    """
    纯文本格式化器

    格式：{timestamp} {level} {logger} {message} [{username}|{user_id}|{request_id}]

    输出示例：
    2026-10-19 16:57:25 INFO apps.menus.services 创建菜单 [root|1|3f2a9c1d7e4b]
    """

    def format(self, record: logging.LogRecord) -> str:
        from apps.common.utils.request_context import get_request_context

        ctx = get_request_context()
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        username = ctx.get("username") or "-"
        user_id = str(ctx.get("user_id")) if ctx.get("user_id") is not None else "-"
        request_id = ctx.get("request_id") or "-"
        context_info = f"[{username}|{user_id}|{request_id}]"

        log_line = f"{timestamp} {record.levelname} {record.name} {record.getMessage()} {context_info}"
        if record.exc_info:
            log_line += "\n" + self.formatException(record.exc_info)
        return log_line


def get_log_path_from_settings() -> str:
    """基于 settings.LOG_PATH 生成日志文件路径：{LOG_PATH}/system.log"""
    log_dir = Path(getattr(django_settings, "LOG_PATH", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / "system.log")


def configure_logging(force: bool = False, *, level: Optional[int] = None, log_file_path: Optional[str] = None) -> None:
    """
    配置日志系统

    配置内容：
    - 使用 PLAIN 格式（人类可读，易于 grep）
    - 按日期自动轮转（每天午夜），保留 30 天
    - DEBUG=true 时额外输出到控制台

    参数：
        force: 是否强制重新配置（默认只配置一次）
    """
    global _configured
    if _configured and not force:
        return

    log_level = level if level is not None else getattr(logging, str(getattr(django_settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO)
    log_file_path = log_file_path if log_file_path is not None else get_log_path_from_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # 清除已有的 handlers，同时关闭旧文件避免资源告警
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()

    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=log_file_path,
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8",
        delay=True,  # 延迟打开文件，避免多进程抢占导致轮转失败
    )
    file_handler.suffix = "%Y-%m-%d"
    file_handler.setLevel(log_level)

    formatter = PlainContextFormatter()
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if os.getenv("DEBUG", "False").lower() == "true":
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    获取 logger 实例

    使用方式：
        logger = get_logger(__name__)
        logger.info("创建菜单", extra=logger_extra({"menu_id": 1}))
    """
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


SENSITIVE_KEYS = {"password", "token", "secret"}


def sanitize_extra(extra: Optional[dict] = None) -> dict:
    """过滤敏感字段，避免在日志中泄露口令/令牌"""
    if not extra:
        return {}
    return {k: ("***" if k.lower() in SENSITIVE_KEYS else v) for k, v in extra.items()}


def logger_extra(extra: Optional[dict] = None) -> dict:
    """封装 extra，自动过滤敏感字段"""
    return sanitize_extra(extra)
