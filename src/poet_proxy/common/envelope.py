"""JSON envelopes returned to the browser client."""
from __future__ import annotations
from typing import Any

from poet_proxy.common.schema import GenerationRequest, GenerationResult, ImageResult

MSG_TEXT_OK = "تولید متن با موفقیت انجام شد."
MSG_IMAGE_OK = "تصویر با موفقیت تولید شد و به صورت Base64 بازگردانده شده است."
MSG_CONFIG_ERROR = (
    "خطای پیکربندی: کلید GEMINI_API_KEY در تنظیمات Environment Variables یافت نشد یا نامعتبر است."
)
MSG_METHOD_NOT_ALLOWED = "لطفاً با متد POST و بدنه JSON درخواست خود را ارسال کنید."
MSG_EMPTY_PROMPT = "پرامپت نمی‌تواند خالی باشد."
MSG_FAILURE = "خطا در پردازش درخواست یا فراخوانی API."


def success_envelope(request: GenerationRequest, result: GenerationResult) -> dict[str, Any]:
    if isinstance(result, ImageResult):
        return {
            "status": "success",
            "type": "image",
            "prompt_sent": request.prompt,
            "image_url": result.data_url,
            "mime_type": result.mime_type,
            "message_fa": MSG_IMAGE_OK,
        }
    return {
        "status": "success",
        "type": "text",
        "prompt_sent": request.prompt,
        "poem": result.poem,
        "message_fa": MSG_TEXT_OK,
    }


def error_envelope(
    message_fa: str | None = None,
    error_details: str | None = None,
) -> dict[str, Any]:
    out: dict[str, Any] = {"status": "error"}
    if message_fa is not None:
        out["message_fa"] = message_fa
    if error_details is not None:
        out["error_details"] = error_details
    return out
