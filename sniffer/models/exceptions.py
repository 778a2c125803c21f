from typing import Any, Dict, Optional

class SnifferException(Exception):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        context_str = f" - Context: {self.context}" if self.context else ""
        return f"{self.__class__.__name__}: {self.message}{context_str}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


class NetworkException(SnifferException):
    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if url:
            ctx["url"] = url
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message, ctx)


class SecurityException(SnifferException):
    def __init__(
        self,
        message: str,
        security_control: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if security_control:
            ctx["security_control"] = security_control
        super().__init__(message, ctx)


class ValidationException(SnifferException):
    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if field:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = value
        super().__init__(message, ctx)


class ConfigurationException(SnifferException):

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if config_key:
            ctx["config_key"] = config_key
        if config_value is not None:
            ctx["config_value"] = config_value
        super().__init__(message, ctx)


class PageUnreachableException(SnifferException):
    """The page context could not be reached, nothing was sniffed"""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        error_code: Optional[str] = None,
        hint: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if url:
            ctx["url"] = url
        if error_code:
            ctx["error_code"] = error_code
        if hint:
            ctx["hint"] = hint
        self.error_code = error_code or "PAGE_UNREACHABLE"
        self.hint = hint
        super().__init__(message, ctx)


class MyNestAPIException(NetworkException):
    """MyNest download API rejected a request or could not be reached"""
    pass


class OutputException(SnifferException):
    def __init__(
        self,
        message: str,
        output_format: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if output_format:
            ctx["output_format"] = output_format
        super().__init__(message, ctx)


class URLValidationException(ValidationException):
    """URL validation failed"""
    pass


class ContentSizeException(SecurityException):
    """Content size exceeds limits"""
    pass
