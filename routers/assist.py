import httpx
from fastapi import APIRouter, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from schemas.assist import SummarizeRequest, SummarizeResponse, TranslateRequest, TranslateResponse
from errors import ApiError, UpstreamResponseError, describe_upstream_error
from upstream import UpstreamClient
from logging_config import get_logger

logger = get_logger(__name__)

assist_router = APIRouter(tags=["assist"])

SAME_LANGUAGE_MESSAGE = "The detected language is the same as the target language."
TRANSLATE_FIELDS_REQUIRED = "Both 'text' and 'targetLanguage' are required."
SUMMARIZE_FIELDS_REQUIRED = "'conversationText' is required."

# Body errors on these routes (no body, bad JSON, wrong types) get the
# same 400 as a missing field instead of FastAPI's 422.
REQUIRED_FIELDS_ERRORS = {
    "/detect-and-translate": TRANSLATE_FIELDS_REQUIRED,
    "/summarize-conversation": SUMMARIZE_FIELDS_REQUIRED,
}


def get_upstream(request: Request) -> UpstreamClient:
    return request.app.state.upstream


@assist_router.post(
    "/detect-and-translate",
    response_model=TranslateResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def detect_and_translate(body: TranslateRequest, request: Request):
    # { "text": "Hola", "targetLanguage": "en" }
    # Response 200: { "detectedLanguage": "es", "translatedText": "Hello" }
    if not body.text or not body.target_language:
        logger.info("Translate request rejected: missing text or targetLanguage")
        raise ApiError(400, TRANSLATE_FIELDS_REQUIRED)

    upstream = get_upstream(request)
    try:
        detected_language = await upstream.detect_language(body.text)
        if not detected_language:
            logger.error("Language detection returned no detections")
            raise ApiError(500, "Failed to detect language")

        if detected_language == body.target_language:
            logger.info(f"Detected {detected_language}, same as target, skipping translation")
            return TranslateResponse(
                detected_language=detected_language,
                translated_text=body.text,
                message=SAME_LANGUAGE_MESSAGE,
            )

        translated_text = await upstream.translate(body.text, detected_language, body.target_language)
        if translated_text is None:
            logger.error(f"Translation {detected_language} -> {body.target_language} returned no translations")
            raise ApiError(500, "Translation failed")
    except (httpx.HTTPError, UpstreamResponseError) as e:
        details = describe_upstream_error(e)
        logger.error(f"Error in translation or detection: {details}")
        raise ApiError(500, "An error occurred during language detection or translation.", details=details)

    logger.info(f"Translated {detected_language} -> {body.target_language}")
    return TranslateResponse(detected_language=detected_language, translated_text=translated_text)


@assist_router.post("/summarize-conversation", response_model=SummarizeResponse)
async def summarize_conversation(body: SummarizeRequest, request: Request):
    if not body.conversation_text:
        logger.info("Summarize request rejected: missing conversationText")
        raise ApiError(400, SUMMARIZE_FIELDS_REQUIRED)

    try:
        summary = await get_upstream(request).summarize(body.conversation_text)
    except (httpx.HTTPError, UpstreamResponseError) as e:
        logger.error(f"Error summarizing conversation: {describe_upstream_error(e)}", exc_info=True)
        raise ApiError(500, "Failed to summarize conversation")

    return SummarizeResponse(summary=summary)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = REQUIRED_FIELDS_ERRORS.get(request.url.path)
    if error is None:
        return await request_validation_exception_handler(request, exc)
    logger.info(f"Rejected malformed body on {request.url.path}: {len(exc.errors())} validation errors")
    return JSONResponse(status_code=400, content={"error": error})
