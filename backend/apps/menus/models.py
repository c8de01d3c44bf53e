from __future__ import annotations

from django.db import models

# 模型文件：定义菜单、菜单动作、动作资源的数据结构，不承载业务流程
# 主键由 Snowflake 生成器在写入前分配；上级关系使用普通整数列，不建数据库外键，
# 这样同一事务内可以先写动作/资源再写菜单行


class Menu(models.Model):
    """
    菜单节点：
    - parent_id 为 0 表示根节点
    - parent_path 为物化路径，按祖先 ID 以 "/" 拼接（根下直接子节点为 "<根ID>"）
    - 同一上级下名称唯一（由服务层校验）
    """

    class Status(models.IntegerChoices):
        ENABLED = 1, "启用"
        DISABLED = 2, "禁用"

    class ShowFlag(models.IntegerChoices):
        SHOW = 1, "显示"
        HIDE = 2, "隐藏"

    id = models.BigIntegerField("ID", primary_key=True)
    # 菜单名称
    name = models.CharField("菜单名称", max_length=50, help_text="同一上级下不能重复")
    # 排序值，越大越靠前
    sequence = models.IntegerField("排序值", default=0, db_index=True)
    icon = models.CharField("图标", max_length=255, blank=True, default="")
    # 前端路由
    router = models.CharField("访问路由", max_length=255, blank=True, default="")
    parent_id = models.BigIntegerField("上级ID", default=0, db_index=True)
    parent_path = models.CharField("上级路径", max_length=512, blank=True, default="", db_index=True)
    is_show = models.SmallIntegerField("是否显示", choices=ShowFlag.choices, default=ShowFlag.SHOW, db_index=True)
    status = models.SmallIntegerField("状态", choices=Status.choices, default=Status.ENABLED, db_index=True)
    memo = models.CharField("备注", max_length=1024, blank=True, default="")
    creator = models.CharField("创建者", max_length=64, blank=True, default="")
    created_at = models.DateTimeField("创建时间", auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField("更新时间", auto_now=True)

    class Meta:
        db_table = "menus_menu"
        ordering = ["-sequence", "-created_at"]
        verbose_name = "菜单"
        verbose_name_plural = "菜单"

    def __str__(self) -> str:
        return self.name


class MenuAction(models.Model):
    """菜单动作：按钮/操作，code 在所属菜单内唯一，作为更新时的比对键"""

    id = models.BigIntegerField("ID", primary_key=True)
    menu_id = models.BigIntegerField("所属菜单ID", db_index=True)
    code = models.CharField("动作编号", max_length=100)
    name = models.CharField("动作名称", max_length=100)

    class Meta:
        db_table = "menus_menu_action"
        ordering = ["id"]
        verbose_name = "菜单动作"
        verbose_name_plural = "菜单动作"
        constraints = [
            models.UniqueConstraint(fields=["menu_id", "code"], name="uniq_menu_action_code"),
        ]

    def __str__(self) -> str:
        return f"{self.code}:{self.name}"


class MenuActionResource(models.Model):
    """动作关联的接口资源：method + path 在所属动作内唯一"""

    id = models.BigIntegerField("ID", primary_key=True)
    action_id = models.BigIntegerField("所属动作ID", db_index=True)
    method = models.CharField("请求方法", max_length=50)
    path = models.CharField("请求路径", max_length=255)

    class Meta:
        db_table = "menus_menu_action_resource"
        ordering = ["id"]
        verbose_name = "动作资源"
        verbose_name_plural = "动作资源"
        constraints = [
            models.UniqueConstraint(fields=["action_id", "method", "path"], name="uniq_action_resource_key"),
        ]

    def __str__(self) -> str:
        return f"{self.method} {self.path}"
