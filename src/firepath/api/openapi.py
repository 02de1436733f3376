from __future__ import annotations

from typing import Any

from firepath.api.errors import ErrorResponse

ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "バッチサイズ不正"},
    401: {"model": ErrorResponse, "description": "未認証"},
    403: {"model": ErrorResponse, "description": "認可エラー"},
    404: {"model": ErrorResponse, "description": "ドキュメントなし"},
    422: {"model": ErrorResponse, "description": "パス・クエリ不正"},
    500: {"model": ErrorResponse, "description": "想定外エラー"},
    502: {"model": ErrorResponse, "description": "バッチ書き込み失敗 (確定済みチャンク情報付き)"},
}


def error_responses(*codes: int) -> dict[int, dict[str, Any]]:
    return {code: ERROR_RESPONSES[code] for code in codes if code in ERROR_RESPONSES}
