"""
响应 / 错误解释器

从远程服务的响应中提取图像数据，或把失败（返回或抛出的错误）归类为
ServiceError，并生成可直接展示给用户的提示信息。

响应和错误的结构并不统一：既可能是 google-genai SDK 对象，也可能是原始 JSON
字典（camelCase 或 snake_case 字段），错误载荷还可能嵌套在 ``error`` 字段下。
"""

import base64
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence

from services.exceptions import (
    ImageRefusedError,
    NoImageReturnedError,
    ServiceError,
    ServiceErrorKind,
    service_error_for,
)
from services.logging import get_logger
from services.retry_delay import format_wait, parse_retry_delay

logger = get_logger(__name__)

OUTPUT_MIME_TYPE = "image/png"
RETRY_INFO_TYPE = "google.rpc.RetryInfo"
PRICING_URL = "https://ai.google.dev/pricing"

REFUSED_MESSAGE = "Gemini refused to generate an image. Reason: {reason}"
NO_IMAGE_MESSAGE = "No image data received from Gemini."
GENERIC_FALLBACK_MESSAGE = "Failed to edit image using Gemini."
QUOTA_MESSAGE = (
    "API quota exceeded. You've reached the free tier limit. "
    "Please wait a few minutes before trying again, or upgrade your plan at " + PRICING_URL
)
QUOTA_MINUTES_MESSAGE = (
    "API quota exceeded. You've reached the free tier limit. "
    "Please wait {wait} before trying again, or upgrade your plan at " + PRICING_URL
)
QUOTA_SECONDS_MESSAGE = (
    "API quota exceeded. Please wait {wait} before trying again, "
    "or upgrade your plan at " + PRICING_URL
)


def _field(obj: Any, *names: str) -> Any:
    """按顺序读取映射键或对象属性，返回第一个非 None 的值"""
    if obj is None:
        return None
    for name in names:
        if isinstance(obj, Mapping):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# 成功路径
# ---------------------------------------------------------------------------

def _first_candidate_parts(response: Any) -> Sequence[Any]:
    candidates = _field(response, "candidates")
    if not candidates:
        return []
    content = _field(candidates[0], "content")
    return _field(content, "parts") or []


def _inline_image_data(part: Any) -> Optional[str]:
    """返回片段中的 base64 图像数据，片段不含图像时返回 None"""
    inline = _field(part, "inline_data", "inlineData")
    data = _field(inline, "data")
    if not data:
        return None
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    # JSON 响应中的数据已是 base64 字符串
    return str(data)


def to_data_url(b64_data: str, mime_type: str = OUTPUT_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{b64_data}"


def interpret_response(response: Any) -> str:
    """
    从响应中提取第一张图像并包装为 data URL

    Args:
        response: GenerateContentResponse 或等价的 JSON 字典

    Returns:
        str: data:image/png;base64,... 形式的图像 URL

    Raises:
        ImageRefusedError: 没有图像但模型返回了文字说明
        NoImageReturnedError: 既没有图像也没有文字
    """
    parts = _first_candidate_parts(response)

    for part in parts:
        b64_data = _inline_image_data(part)
        if b64_data is not None:
            return to_data_url(b64_data)

    for part in parts:
        text = _field(part, "text")
        if text:
            logger.warning("Model returned text instead of an image", reason=text)
            raise ImageRefusedError(REFUSED_MESSAGE.format(reason=text))

    candidates = _field(response, "candidates") or []
    finish_reason = _field(candidates[0], "finish_reason", "finishReason") if candidates else None
    logger.warning(
        "Response contained no image data",
        candidate_count=len(candidates),
        finish_reason=str(finish_reason) if finish_reason is not None else None
    )
    raise NoImageReturnedError(NO_IMAGE_MESSAGE)


# ---------------------------------------------------------------------------
# 失败路径
# ---------------------------------------------------------------------------

@dataclass
class NormalizedError:
    """展开嵌套 ``error`` 后的错误记录"""
    code: Optional[int] = None
    status: Optional[str] = None
    message: str = ""
    details: List[Any] = field(default_factory=list)
    raw_message: str = ""


def _nested_payload(error: Any) -> Any:
    nested = _field(error, "error")
    if nested is not None:
        return nested

    # google.genai.errors.APIError 把完整 JSON 响应体放在 details 中
    body = _field(error, "details")
    if isinstance(body, Mapping) and isinstance(body.get("error"), Mapping):
        return body["error"]

    return None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_error(error: Any) -> NormalizedError:
    """
    把任意形态的错误归一化

    内层 ``error`` 的字段优先，缺失时回退到外层。
    """
    inner = _nested_payload(error)

    code = _as_int(_field(inner, "code") if inner is not None else None)
    if code is None:
        code = _as_int(_field(error, "code"))

    if isinstance(error, Mapping):
        raw_message = str(error.get("message") or "")
    else:
        raw_message = str(error)

    status = _field(inner, "status") or _field(error, "status")
    # 普通异常没有 message 属性，以 str(error) 作为其信息
    message = _field(inner, "message") or _field(error, "message") or (
        "" if isinstance(error, Mapping) else raw_message
    )

    details = _field(inner, "details")
    if not isinstance(details, (list, tuple)):
        details = _field(error, "details")
    if not isinstance(details, (list, tuple)):
        details = []

    return NormalizedError(
        code=code,
        status=str(status) if status is not None else None,
        message=str(message),
        details=list(details),
        raw_message=raw_message,
    )


def find_retry_delay(details: Sequence[Any]) -> Optional[float]:
    """在 details 中查找 RetryInfo，返回秒数；找不到或格式不合法时返回 None"""
    for detail in details:
        detail_type = _field(detail, "@type", "type")
        if not detail_type or not str(detail_type).endswith(RETRY_INFO_TYPE):
            continue
        delay = _field(detail, "retryDelay", "retry_delay")
        if delay:
            return parse_retry_delay(delay)
    return None


def quota_message(retry_after_seconds: Optional[float]) -> str:
    """根据重试提示生成配额提示信息"""
    if retry_after_seconds is None:
        return QUOTA_MESSAGE
    if retry_after_seconds >= 60:
        return QUOTA_MINUTES_MESSAGE.format(wait=format_wait(retry_after_seconds))
    return QUOTA_SECONDS_MESSAGE.format(wait=format_wait(retry_after_seconds))


@dataclass(frozen=True)
class ClassificationRule:
    """有序分类规则：第一个命中的规则决定错误类别"""
    name: str
    matches: Callable[[NormalizedError], bool]
    kind: ServiceErrorKind
    use_retry_info: bool = False


CLASSIFICATION_RULES = (
    ClassificationRule(
        name="http_429",
        matches=lambda e: e.code == 429,
        kind=ServiceErrorKind.QUOTA_EXCEEDED,
        use_retry_info=True,
    ),
    ClassificationRule(
        name="resource_exhausted",
        matches=lambda e: e.status == "RESOURCE_EXHAUSTED",
        kind=ServiceErrorKind.QUOTA_EXCEEDED,
        use_retry_info=True,
    ),
    ClassificationRule(
        name="quota_message",
        matches=lambda e: "quota" in e.message or "Quota exceeded" in e.message,
        kind=ServiceErrorKind.QUOTA_EXCEEDED,
        use_retry_info=True,
    ),
    ClassificationRule(
        name="quota_raw_message",
        matches=lambda e: "quota" in e.raw_message,
        kind=ServiceErrorKind.QUOTA_EXCEEDED,
    ),
    ClassificationRule(
        name="fallback",
        matches=lambda e: True,
        kind=ServiceErrorKind.GENERIC,
    ),
)


def classify_error(normalized: NormalizedError,
                   rules: Sequence[ClassificationRule] = CLASSIFICATION_RULES) -> ServiceError:
    """按规则顺序把归一化错误映射为 ServiceError"""
    rule = next(r for r in rules if r.matches(normalized))

    if rule.kind is ServiceErrorKind.QUOTA_EXCEEDED:
        retry_after = find_retry_delay(normalized.details) if rule.use_retry_info else None
        error = service_error_for(rule.kind, quota_message(retry_after), retry_after)
    else:
        error = service_error_for(rule.kind, normalized.message or GENERIC_FALLBACK_MESSAGE)

    logger.info(
        "Remote error classified",
        rule=rule.name,
        kind=error.kind.value,
        retry_after_seconds=error.retry_after_seconds
    )
    return error


def interpret_error(error: Any) -> ServiceError:
    """
    把远程调用抛出的错误转换为 ServiceError

    已经分类过的 ServiceError 原样返回。原始错误信息先写入日志再转换。
    """
    if isinstance(error, ServiceError):
        return error

    normalized = normalize_error(error)
    logger.error(
        "Gemini API error",
        code=normalized.code,
        status=normalized.status,
        original_message=normalized.message or normalized.raw_message,
        error_type=type(error).__name__
    )
    return classify_error(normalized)
