# -*- coding: utf-8 -*-
from django.apps import AppConfig
from django.db.models.signals import post_migrate


class MenusConfig(AppConfig):
    """
    菜单模块应用配置：
    - 启动时初始化日志
    - MENU_INIT_ENABLED 打开时，迁移完成后从 MENU_DATA_FILE 导入初始菜单树
    """

    name = "apps.menus"
    label = "menus"
    verbose_name = "Menus"

    def ready(self):
        """
        启动钩子：注册 post_migrate 信号，避免在 App 初始化阶段直接访问数据库
        """
        from django.conf import settings

        from apps.common.infra.logger import configure_logging, get_logger

        configure_logging()
        logger = get_logger(__name__)

        if not getattr(settings, "MENU_INIT_ENABLED", False):
            return

        def init_menus(**kwargs):
            _ = kwargs  # 未使用
            from apps.common.exceptions import BizError
            from apps.menus.services import MenuInitDataService

            data_file = getattr(settings, "MENU_DATA_FILE", "")
            try:
                count = MenuInitDataService().execute(data_file)
            except (BizError, OSError) as exc:
                # 初始化整体在单事务内，失败时没有残留数据
                logger.warning(f"菜单初始化跳过：{exc}")
                return
            if count:
                logger.info(f"菜单初始化完成，共 {count} 个菜单")

        post_migrate.connect(init_menus, sender=self, weak=False)
