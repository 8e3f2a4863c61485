import logging
from typing import Any, Callable, Dict, List, Tuple
from fastapi import APIRouter, HTTPException, Request
from slowapi.errors import RateLimitExceeded
from starlette.concurrency import run_in_threadpool
from firstlook.core.errors import ErrorCodes, get_error_response
from firstlook.core.sanitization import is_scalar_cell, sanitize_for_logging, validate_column_name
from firstlook.core.schemas import AnalysisResult, AnalyzeRequest, AskRequest, AskResponse
from firstlook.services.ask import answer_question
from firstlook.services.pipeline import analyze

logger = logging.getLogger(__name__)

router = APIRouter()

# slowapi registers a limit every time a function is decorated, so each
# handler is decorated once per (limiter, limit) pair.
_limited_handlers: Dict[Tuple[int, str, str], Callable] = {}


def _raise(request: Request, status_code: int, error_code: str, additional_detail: str = None):
    error_info = get_error_response(error_code, additional_detail)
    error_info['correlation_id'] = getattr(request.state, 'correlation_id', 'unknown')
    raise HTTPException(status_code=status_code, detail=error_info)


def _validate_rows(rows: List[Any], request: Request) -> None:
    """
    Reject payloads the pipeline cannot take: no rows, too many rows or
    columns, or rows that are not flat objects of scalar cells.
    """
    settings = request.app.state.settings

    if not rows:
        _raise(request, 400, ErrorCodes.EMPTY_DATASET)
    if len(rows) > settings.max_rows:
        _raise(request, 413, ErrorCodes.TOO_MANY_ROWS, f"Maximum is {settings.max_rows:,} rows, got {len(rows):,}.")

    columns = set()
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            _raise(request, 400, ErrorCodes.INVALID_ROWS, f"Row {index} is not an object.")
        for key, value in row.items():
            if not validate_column_name(key):
                _raise(request, 400, ErrorCodes.INVALID_ROWS, f"Row {index} has an invalid column name.")
            if not is_scalar_cell(value):
                _raise(request, 400, ErrorCodes.INVALID_ROWS, f"Row {index} has a nested value.")
            columns.add(key)
        if len(columns) > settings.max_columns:
            _raise(
                request, 413, ErrorCodes.TOO_MANY_COLUMNS,
                f"Maximum is {settings.max_columns:,} columns."
            )


def _rate_limited(request: Request, handler: Callable) -> Callable:
    """Return ``handler`` wrapped with the per-IP limit configured in app state."""
    limiter = request.app.state.limiter
    limit = f"{request.app.state.settings.rate_limit_per_minute}/minute"
    key = (id(limiter), handler.__name__, limit)
    if key not in _limited_handlers:
        _limited_handlers[key] = limiter.limit(limit)(handler)
    return _limited_handlers[key]


@router.get("/health")
async def health_check():
    return {"status": "ok"}


async def analyze_endpoint(request: Request, payload: AnalyzeRequest) -> AnalysisResult:
    _validate_rows(payload.rows, request)
    logger.info(f"Analyzing {len(payload.rows)} rows ({sanitize_for_logging(payload.file_kind, 20)})")
    return await run_in_threadpool(analyze, payload.rows, payload.file_kind)


@router.post("/analyze", response_model=AnalysisResult)
async def analyze_rows(payload: AnalyzeRequest, request: Request):
    """
    Profile a set of rows and return KPIs, charts and insights.

    Rows arrive already decoded; each must be an object of scalar cells.
    Rate limited per IP address (RATE_LIMIT_PER_MINUTE).
    """
    try:
        return await _rate_limited(request, analyze_endpoint)(request, payload=payload)
    except (HTTPException, RateLimitExceeded):
        raise
    except Exception as e:
        logger.error(f"Unexpected error during analysis: {type(e).__name__}: {e}", exc_info=True)
        _raise(request, 500, ErrorCodes.UNKNOWN_ERROR)


async def ask_endpoint(request: Request, payload: AskRequest) -> AskResponse:
    settings = request.app.state.settings
    question = payload.question.strip()
    if not question:
        _raise(request, 400, ErrorCodes.EMPTY_QUESTION)
    if len(question) > settings.max_question_length:
        _raise(
            request, 400, ErrorCodes.QUESTION_TOO_LONG,
            f"Maximum is {settings.max_question_length} characters."
        )
    _validate_rows(payload.rows, request)

    result = await run_in_threadpool(analyze, payload.rows, payload.file_kind)
    answer = answer_question(question, result.meta, result.profile, result.kpis, result.charts, result.insights)
    return AskResponse(answer=answer, meta=result.meta)


@router.post("/ask", response_model=AskResponse)
async def ask_question(payload: AskRequest, request: Request):
    """
    Answer a free-text question about a set of rows.

    The analysis is recomputed from the rows on every call.
    """
    try:
        return await _rate_limited(request, ask_endpoint)(request, payload=payload)
    except (HTTPException, RateLimitExceeded):
        raise
    except Exception as e:
        logger.error(f"Unexpected error answering question: {type(e).__name__}: {e}", exc_info=True)
        _raise(request, 500, ErrorCodes.UNKNOWN_ERROR)
