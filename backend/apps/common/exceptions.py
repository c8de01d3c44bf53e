"""
业务异常体系（BizError）

约定与作用：
- 所有“预期内的业务错误”都继承 BizError，避免直接抛框架异常
- 统一错误码/HTTP 状态/提示语，便于调用方对齐
- 系统级错误（代码 bug、数据库故障等）不做转换，原样向上抛出

错误码规范：
- 0                : 成功（只出现在正常响应里）
- 40000~40099      : 通用请求 / 参数错误（Validation、InvalidParent）
- 40400~40499      : 资源不存在（菜单、动作等）

使用方式：
- 业务层抛 BizError 或子类；调用方读取 exc.code/message/http_status/extra 构造响应
"""


class BizError(Exception):
    """
    所有业务异常的基类

    设计要点：
    - 不耦合任何传输层，只是纯数据和语义；
    - 子类只需覆盖 default_code / default_message / http_status；
    - 也可以在 __init__ 时传入自定义 message / code / extra 做覆盖
    """

    #: 子类可覆盖的默认错误码
    default_code: int = 40000

    #: 子类可覆盖的默认提示信息
    default_message: str = "业务错误"

    #: 子类可覆盖的建议 HTTP 状态码
    http_status: int = 400

    def __init__(self, message: str | None = None, code: int | None = None, *, extra: dict | None = None):
        self.code = code if code is not None else self.default_code
        self.message = message if message is not None else self.default_message
        self.extra = extra or {}
        super().__init__(self.message)

    def __str__(self) -> str:  # 方便日志输出
        return f"[{self.code}] {self.message}"


class ValidationError(BizError):
    """
    参数校验 / 业务约束不满足：
    - 同级菜单名称重复
    - 删除仍有子菜单的菜单
    - 字段格式错误
    """
    default_code = 40002
    default_message = "请求参数不合法"
    http_status = 400


class InvalidParentError(BizError):
    """
    上级引用无效：
    - 菜单以自身为上级
    - 上级菜单不存在
    - 上级菜单位于自身子树内（会形成环）
    """
    default_code = 40003
    default_message = "无效的上级菜单"
    http_status = 400


class NotFoundError(BizError):
    """
    通用资源不存在：
    - 某个 ID 对应的菜单未找到
    """
    default_code = 40400
    default_message = "资源不存在"
    http_status = 404
