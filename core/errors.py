"""Application error definitions and FastAPI handlers."""

import logging
from typing import Any, Dict, Optional, Sequence

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        code: str = "error",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.context = context or {}
        super().__init__(message)


class NotFoundException(AppException):
    def __init__(self, message: str = "Registro não encontrado", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=status.HTTP_404_NOT_FOUND, code="not_found", context=context)


class ValidationAppException(AppException):
    def __init__(self, message: str = "Dados inválidos", context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            context=context,
        )


class CyclicDependencyException(AppException):
    """A product reappeared on the path currently being resolved."""

    def __init__(self, path: Sequence[Any], message: str = "Dependência circular detectada"):
        self.path = list(path)
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            code="cyclic_dependency",
            context={"caminho": [str(p) for p in self.path]},
        )


class InvalidPercentageException(AppException):
    def __init__(self, value: Any, field: str = "percentual", context: Optional[Dict[str, Any]] = None):
        self.value = value
        ctx = {"campo": field, "valor": str(value)}
        ctx.update(context or {})
        super().__init__(
            message=f"Percentual inválido para {field}: deve estar entre 0 e 100",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="invalid_percentage",
            context=ctx,
        )


class UpstreamUnavailableException(AppException):
    """The data store could not be read; safe for the caller to retry."""

    def __init__(self, message: str = "Fonte de dados indisponível", context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="upstream_unavailable",
            context=context,
        )


class UnauthorizedException(AppException):
    def __init__(self, message: str = "Usuário não identificado"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, code="unauthorized")


class ForbiddenException(AppException):
    def __init__(self, message: str = "Acesso negado"):
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, code="forbidden")


class ConflictException(AppException):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT, code="conflict", context=context)


class InvalidTransitionException(AppException):
    def __init__(self, current: str, target: str):
        super().__init__(
            message=f"Transição de status inválida: {current} -> {target}",
            status_code=status.HTTP_409_CONFLICT,
            code="invalid_transition",
            context={"atual": current, "destino": target},
        )


def _format_error(detail: str, code: str, context: Optional[Dict[str, Any]] = None):
    body = {"mensagem": detail, "codigo": code}
    if context:
        body["contexto"] = context
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.code, exc.context)
        return JSONResponse(status_code=exc.status_code, content=_format_error(exc.message, exc.code, exc.context))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_format_error("Os dados enviados não puderam ser validados", "validation_error"),
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_format_error("Os dados enviados não puderam ser validados", "validation_error"),
        )
