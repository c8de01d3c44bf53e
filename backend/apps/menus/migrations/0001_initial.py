from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Menu",
            fields=[
                ("id", models.BigIntegerField(primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(help_text="同一上级下不能重复", max_length=50, verbose_name="菜单名称")),
                ("sequence", models.IntegerField(db_index=True, default=0, verbose_name="排序值")),
                ("icon", models.CharField(blank=True, default="", max_length=255, verbose_name="图标")),
                ("router", models.CharField(blank=True, default="", max_length=255, verbose_name="访问路由")),
                ("parent_id", models.BigIntegerField(db_index=True, default=0, verbose_name="上级ID")),
                ("parent_path", models.CharField(blank=True, db_index=True, default="", max_length=512, verbose_name="上级路径")),
                ("is_show", models.SmallIntegerField(choices=[(1, "显示"), (2, "隐藏")], db_index=True, default=1, verbose_name="是否显示")),
                ("status", models.SmallIntegerField(choices=[(1, "启用"), (2, "禁用")], db_index=True, default=1, verbose_name="状态")),
                ("memo", models.CharField(blank=True, default="", max_length=1024, verbose_name="备注")),
                ("creator", models.CharField(blank=True, default="", max_length=64, verbose_name="创建者")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="创建时间")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="更新时间")),
            ],
            options={
                "verbose_name": "菜单",
                "verbose_name_plural": "菜单",
                "db_table": "menus_menu",
                "ordering": ["-sequence", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="MenuAction",
            fields=[
                ("id", models.BigIntegerField(primary_key=True, serialize=False, verbose_name="ID")),
                ("menu_id", models.BigIntegerField(db_index=True, verbose_name="所属菜单ID")),
                ("code", models.CharField(max_length=100, verbose_name="动作编号")),
                ("name", models.CharField(max_length=100, verbose_name="动作名称")),
            ],
            options={
                "verbose_name": "菜单动作",
                "verbose_name_plural": "菜单动作",
                "db_table": "menus_menu_action",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="MenuActionResource",
            fields=[
                ("id", models.BigIntegerField(primary_key=True, serialize=False, verbose_name="ID")),
                ("action_id", models.BigIntegerField(db_index=True, verbose_name="所属动作ID")),
                ("method", models.CharField(max_length=50, verbose_name="请求方法")),
                ("path", models.CharField(max_length=255, verbose_name="请求路径")),
            ],
            options={
                "verbose_name": "动作资源",
                "verbose_name_plural": "动作资源",
                "db_table": "menus_menu_action_resource",
                "ordering": ["id"],
            },
        ),
        migrations.AddConstraint(
            model_name="menuaction",
            constraint=models.UniqueConstraint(fields=("menu_id", "code"), name="uniq_menu_action_code"),
        ),
        migrations.AddConstraint(
            model_name="menuactionresource",
            constraint=models.UniqueConstraint(fields=("action_id", "method", "path"), name="uniq_action_resource_key"),
        ),
    ]
