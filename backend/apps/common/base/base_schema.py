# apps/common/base/base_schema.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Dict, Generic, Iterable, Mapping, Optional, TypeVar

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound="BaseSchema[Any]")


@dataclass
class BaseSchema(ABC, Generic[T]):
    """
    业务 Schema / DTO 基类

    目的：
        - 用于 Service 层在 Model 与外部输入之间传递结构化数据；
        - 聚合字段校验逻辑；
        - 提供通用的字典化与 Model 映射

    子类示例：
        @dataclass
        class MenuSchema(BaseSchema):
            name: str

            def validate(self):
                if not self.name:
                    raise ValidationError(message="菜单名称不能为空")
    """

    #: 是否在 __post_init__ 中自动执行 validate
    auto_validate: ClassVar[bool] = False

    def __post_init__(self):
        if self.auto_validate:
            self.validate()

    @abstractmethod
    def validate(self) -> None:
        """
        子类实现字段/业务约束校验，出错时抛 BizError
        """

    def to_dict(
            self,
            *,
            exclude_none: bool = False,
            exclude: Iterable[str] | None = None,
    ) -> Dict[str, Any]:
        """
        将 Schema 转为 dict（嵌套 Schema 一并展开），支持过滤 None 或移除指定字段
        """
        data = asdict(self)
        if exclude_none:
            data = {key: value for key, value in data.items() if value is not None}
        if exclude:
            for key in exclude:
                data.pop(key, None)
        return data

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    @classmethod
    def from_dict(
            cls: type[SchemaType],
            data: Mapping[str, Any],
            *,
            strict: bool = False,
            auto_validate: Optional[bool] = None,
    ) -> SchemaType:
        """
        将外部 payload 转为 Schema

        strict=True 时出现未知字段直接报错（ValueError），否则忽略未知字段
        """
        known = cls.field_names()
        unknown = set(data) - known
        if unknown and strict:
            raise ValueError(f"{cls.__name__} 不支持字段：{', '.join(sorted(unknown))}")
        instance = cls(**{k: v for k, v in data.items() if k in known})  # type: ignore[arg-type]
        if auto_validate:
            instance.validate()
        return instance

    @classmethod
    def from_model(
            cls: type[SchemaType],
            model: T,
            *,
            field_map: Mapping[str, str] | None = None,
            extra: Dict[str, Any] | None = None,
    ) -> SchemaType:
        """
        将 Model 实例转换为 Schema，可通过 field_map 指定属性映射
        """
        payload: Dict[str, Any] = {}
        attr_map = field_map or {}
        for field in fields(cls):
            target_attr = attr_map.get(field.name, field.name)
            if hasattr(model, target_attr):
                payload[field.name] = getattr(model, target_attr)
        if extra:
            payload.update(extra)
        return cls(**payload)
