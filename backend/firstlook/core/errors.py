"""
Error codes and user-facing error payloads.
"""
from typing import Dict, Optional


class ErrorCodes:
    EMPTY_DATASET = "EMPTY_DATASET"
    TOO_MANY_ROWS = "TOO_MANY_ROWS"
    TOO_MANY_COLUMNS = "TOO_MANY_COLUMNS"
    INVALID_ROWS = "INVALID_ROWS"
    EMPTY_QUESTION = "EMPTY_QUESTION"
    QUESTION_TOO_LONG = "QUESTION_TOO_LONG"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    ErrorCodes.EMPTY_DATASET: {
        "message": "There's no data to look at yet",
        "detail": "The request did not contain any rows.",
        "suggestion": "Send at least one row, for example [{\"amount\": 10, \"country\": \"US\"}].",
    },
    ErrorCodes.TOO_MANY_ROWS: {
        "message": "That's a lot of rows",
        "detail": "The dataset exceeds the row limit for a single analysis.",
        "suggestion": "Send a sample of the data instead. A few thousand rows is plenty for a first look.",
    },
    ErrorCodes.TOO_MANY_COLUMNS: {
        "message": "That's a lot of columns",
        "detail": "The dataset exceeds the column limit for a single analysis.",
        "suggestion": "Drop columns you don't need and try again.",
    },
    ErrorCodes.INVALID_ROWS: {
        "message": "Some rows don't look right",
        "detail": "Every row must be an object mapping column names to plain values.",
        "suggestion": "Flatten nested values to numbers, text or dates before sending them.",
    },
    ErrorCodes.EMPTY_QUESTION: {
        "message": "What would you like to know?",
        "detail": "The question was empty.",
        "suggestion": "Try \"summarise dataset\", \"explain <column>\" or \"what stands out\".",
    },
    ErrorCodes.QUESTION_TOO_LONG: {
        "message": "That question is a bit long",
        "detail": "The question exceeds the maximum length.",
        "suggestion": "Keep it short and mention the column you care about.",
    },
    ErrorCodes.RATE_LIMIT_EXCEEDED: {
        "message": "Whoa there! Slow down a bit",
        "detail": "Too many requests in a short time. We limit requests to keep the service fast for everyone.",
        "suggestion": "Wait about a minute and try again.",
    },
    ErrorCodes.TIMEOUT: {
        "message": "This is taking longer than expected",
        "detail": "The analysis did not finish in time. This usually happens with very large datasets.",
        "suggestion": "Try a smaller sample of the rows.",
    },
    ErrorCodes.UNKNOWN_ERROR: {
        "message": "Hmm, something unexpected happened",
        "detail": "We encountered an issue we weren't expecting.",
        "suggestion": "Give it another try in a moment.",
    },
}


def get_error_response(error_code: str, additional_detail: Optional[str] = None) -> Dict[str, str]:
    """
    Get user-friendly error response for an error code.

    Args:
        error_code: One of the ErrorCodes constants
        additional_detail: Optional additional detail to append

    Returns:
        Dictionary with code, message, detail, and suggestion
    """
    error_info = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCodes.UNKNOWN_ERROR])

    response = {
        "code": error_code,
        "message": error_info["message"],
        "detail": error_info["detail"],
        "suggestion": error_info["suggestion"],
    }

    if additional_detail:
        response["detail"] = f"{response['detail']} {additional_detail}"

    return response
