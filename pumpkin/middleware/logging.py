from starlette.requests import Request
import logging
import time
import uuid
import structlog

logger = structlog.get_logger()


class LoggingMiddleware:
    """Request/Response logging middleware"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)

        request_id = str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id

        start_time = time.time()
        self.log_request(request, request_id)

        response_info = {}

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                response_info["status_code"] = message["status"]
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode("latin-1")))
                message["headers"] = headers
            elif message["type"] == "http.response.body":
                response_info["body_size"] = response_info.get("body_size", 0) + len(message.get("body", b""))

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            self.log_error(request, request_id, e, time.time() - start_time)
            raise

        self.log_response(request, request_id, response_info, time.time() - start_time)

    def log_request(self, request: Request, request_id: str):
        """Log incoming request. Headers are left out, they carry bearer credentials."""
        logger.info(
            "HTTP Request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            query_params=dict(request.query_params),
            client_ip=self.get_client_ip(request),
            user_agent=request.headers.get("user-agent", ""),
            origin=request.headers.get("origin"),
            event_type="request"
        )

    def log_response(self, request: Request, request_id: str, response_info: dict, duration: float):
        status_code = response_info.get("status_code", 0)

        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "HTTP Response",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round(duration * 1000, 2),
            response_size_bytes=response_info.get("body_size", 0),
            event_type="response"
        )

    def log_error(self, request: Request, request_id: str, error: Exception, duration: float):
        logger.error(
            "HTTP Error",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            duration_ms=round(duration * 1000, 2),
            error_type=type(error).__name__,
            error_message=str(error),
            success=False,
            event_type="error"
        )

    @staticmethod
    def get_client_ip(request: Request) -> str:
        """Get client IP address considering proxies"""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        return request.client.host if request.client else "unknown"


class StructuredLogger:
    """Structured logging setup"""

    @staticmethod
    def configure_logging():
        """Configure structured logging"""
        from pumpkin.core.config import settings

        renderer = (
            structlog.processors.JSONRenderer()
            if settings.LOG_FORMAT == "json"
            else structlog.dev.ConsoleRenderer()
        )

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
            format="%(message)s"
        )


# Initialize structured logging
StructuredLogger.configure_logging()
