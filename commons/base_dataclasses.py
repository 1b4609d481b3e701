# -*- coding: utf-8 -*-
"""
BaseDataClass
-------------
为 dataclass 子类提供统一的构造 / 清洗 / 校验与序列化能力。
流程：字段映射 -> 字段转换 -> 行级校验 -> 构造实例 -> 序列化。

在埋点场景里有两处用途：
1) 后台解析进程把事件以普通 dict 发回主进程，主进程用 from_list(strict=True) 还原；
2) 出站时 to_dict(by_alias=True) 把内部 snake_case 字段名还原为对外的线上字段名
   （FIELD_MAPPING 的反向映射，如 event_type -> eventType）。

约定：
- 子类必须使用 @dataclass 装饰；
- CONVERTERS 为纯函数；VALIDATORS 只抛错不改值。
"""
from __future__ import annotations

import json
import logging
import dataclasses
from collections.abc import Iterable as _IterableABC
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Mapping,
    Type,
    TypeVar,
)

from commons.base_logger import BaseLogger

_DEFAULT_LOGGER = BaseLogger(name="BaseDataClass").logger

T = TypeVar("T", bound="BaseDataClass")
Converter = Callable[[Any], Any]
RowValidator = Callable[[Dict[str, Any]], None]


class BaseDataClass:
    """dataclass 子类的通用基类：构造、清洗、校验、序列化。

    类变量：
    - FIELD_MAPPING: 外部字段名 -> 内部字段名；to_dict(by_alias=True) 反向使用
    - CONVERTERS:    字段级转换器
    - VALIDATORS:    行级校验器，抛异常即失败
    - LOGGER:        日志器
    - JSON_DEFAULT:  json.dumps 的 default 钩子
    """

    FIELD_MAPPING: ClassVar[Dict[str, str]] = {}
    CONVERTERS: ClassVar[Dict[str, Converter]] = {}
    VALIDATORS: ClassVar[List[RowValidator]] = []

    LOGGER: ClassVar[logging.Logger] = _DEFAULT_LOGGER
    JSON_DEFAULT: ClassVar[Callable[[Any], Any] | None] = None

    @classmethod
    def _logger(cls) -> logging.Logger:
        return getattr(cls, "LOGGER", _DEFAULT_LOGGER) or _DEFAULT_LOGGER

    # ---------------- 构造（单行） ----------------
    @classmethod
    def from_dict(
        cls: Type[T],
        data: Mapping[str, Any],
        *,
        strict: bool = False,
        log_errors: bool = True,
    ) -> T:
        """从单个字典构造实例：映射 -> 转换 -> 校验 -> 构造。

        strict=True 时任何异常直接抛出；否则记录日志后尽量继续（构造/校验失败仍会抛出）。
        """
        logger = cls._logger()

        if not isinstance(data, Mapping):
            msg = f"from_dict 需要 Mapping，实际得到: {type(data).__name__}"
            if strict:
                raise TypeError(msg)
            if log_errors:
                logger.warning(msg)
            data = {}

        try:
            dc_names = {f.name for f in dataclasses.fields(cls)}
        except TypeError:
            raise TypeError(f"{cls.__name__} 必须使用 @dataclass 装饰")

        # 1) 字段映射：外部名与内部名都接受，外部名优先级更低
        combined: Dict[str, Any] = {}
        for ext_key, val in data.items():
            internal = cls.FIELD_MAPPING.get(ext_key, ext_key)
            if internal not in dc_names:
                continue
            if internal in combined and ext_key != internal:
                continue
            combined[internal] = val

        # 2) 字段级转换
        for key, fn in cls.CONVERTERS.items():
            if key in combined:
                try:
                    combined[key] = fn(combined[key])
                except Exception as e:
                    if strict:
                        raise
                    if log_errors:
                        logger.warning(
                            "字段转换失败 %s (%s): %s; 值片段=%r",
                            key, type(e).__name__, e, str(combined.get(key))[:120],
                        )

        # 3) 行级校验：失败一律抛出，由上层决定是否跳过
        for validate in cls.VALIDATORS:
            try:
                validate(combined)
            except Exception as e:
                if log_errors and not strict:
                    vname = getattr(validate, "__name__", repr(validate))
                    logger.warning("行级校验失败 (%s): %s; 数据片段=%r", vname, e, str(combined)[:200])
                raise

        # 4) 构造实例（仅使用声明字段）
        slim = {k: v for k, v in combined.items() if k in dc_names}
        try:
            return cls(**slim)  # type: ignore[arg-type]
        except TypeError as e:
            if log_errors and not strict:
                missing = [f.name for f in dataclasses.fields(cls) if f.name not in slim]
                logger.warning("构造实例失败: %s; 缺失=%r; 数据片段=%r", e, missing, str(slim)[:200])
            raise

    # ---------------- 批量构造 ----------------
    @classmethod
    def from_list(
        cls: Type[T],
        data_list: Iterable[Mapping[str, Any]],
        *,
        strict: bool = False,
        log_errors: bool = True,
    ) -> List[T]:
        """批量构造；非严格模式下单条失败被跳过并记录日志，严格模式下立即抛出。"""
        logger = cls._logger()

        if not isinstance(data_list, _IterableABC) or isinstance(data_list, (str, bytes)):
            raise TypeError("from_list 需要 Iterable[Mapping]，且不接受 str/bytes")

        out: List[T] = []
        for idx, item in enumerate(data_list, start=1):
            if not isinstance(item, Mapping):
                if strict:
                    raise TypeError(f"元素必须是 Mapping，实际为: {type(item).__name__}")
                if log_errors:
                    logger.warning("跳过非 Mapping 元素(第 %d 条): %r", idx, item)
                continue
            try:
                out.append(cls.from_dict(item, strict=strict, log_errors=log_errors))
            except Exception as e:
                if strict:
                    raise
                if log_errors:
                    logger.warning("from_list 跳过第 %d 条失败项: %s", idx, e)
        return out

    # ---------------- 序列化 ----------------
    def to_dict(self, *, drop_none: bool = False, by_alias: bool = False) -> Dict[str, Any]:
        """导出为 dict；
        - drop_none=True：只剔除顶层值为 None 的字段（payload/raw 内部原样保留）
        - by_alias=True：按 FIELD_MAPPING 反向映射输出外部字段名
        """
        if not dataclasses.is_dataclass(self):
            raise TypeError(f"{type(self).__name__} 不是 dataclass，无法 asdict")
        d = dataclasses.asdict(self)
        if drop_none:
            d = {k: v for k, v in d.items() if v is not None}
        if by_alias:
            aliases = {internal: ext for ext, internal in type(self).FIELD_MAPPING.items()}
            d = {aliases.get(k, k): v for k, v in d.items()}
        return d

    def to_json(
        self,
        *,
        ensure_ascii: bool = False,
        drop_none: bool = False,
        by_alias: bool = True,
        default: Callable[[Any], Any] | None = None,
    ) -> str:
        """导出 JSON 文本（默认输出外部字段名，保留中文）。"""
        cls = type(self)
        return json.dumps(
            self.to_dict(drop_none=drop_none, by_alias=by_alias),
            ensure_ascii=ensure_ascii,
            default=default or cls.JSON_DEFAULT,
        )
