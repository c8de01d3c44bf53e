from __future__ import annotations

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.common.exceptions import BizError
from apps.menus.services import MenuInitDataService


class Command(BaseCommand):
    help = "从初始化数据文件（YAML）导入菜单树；菜单表非空时跳过"

    def add_arguments(self, parser):
        parser.add_argument(
            "--file",
            dest="data_file",
            default="",
            help="菜单初始化数据文件，默认使用 settings.MENU_DATA_FILE",
        )

    def handle(self, *args, **options):
        data_file = options.get("data_file") or getattr(settings, "MENU_DATA_FILE", "")
        if not data_file:
            raise CommandError("未指定菜单初始化数据文件")

        self.stdout.write(self.style.WARNING(f"开始导入菜单数据：{data_file}"))
        try:
            count = MenuInitDataService().execute(data_file)
        except FileNotFoundError as exc:
            raise CommandError(f"文件不存在：{data_file}") from exc
        except BizError as exc:
            raise CommandError(str(exc)) from exc

        if count:
            self.stdout.write(self.style.SUCCESS(f"菜单数据已导入，共 {count} 个菜单。"))
        else:
            self.stdout.write(self.style.WARNING("菜单数据已存在或文件为空，未做任何改动。"))
