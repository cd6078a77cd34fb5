"""
Structured Logging Configuration
JSON-formatted logs for production monitoring and audit trails
"""
import logging
import sys
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import structlog
from pythonjsonlogger import jsonlogger

from siteassist.core.config import get_settings

settings = get_settings()


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    Custom JSON log formatter with additional context.
    Ensures all logs are structured and parseable.
    """

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        """Add custom fields to log record"""
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['app'] = settings.APP_NAME
        log_record['env'] = settings.APP_ENV

        if hasattr(record, 'project_id'):
            log_record['project_id'] = record.project_id
        if hasattr(record, 'request_id'):
            log_record['request_id'] = record.request_id


def setup_logging() -> None:
    """
    Configure structured logging for the application.
    Uses JSON format in production, human-readable in development.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if settings.is_production or settings.APP_ENV == "staging":
        formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Reduce noise from noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.INFO)
    logging.getLogger("pinecone").setLevel(logging.INFO)

    root_logger.info(
        f"Logging configured: level={settings.LOG_LEVEL}, env={settings.APP_ENV}"
    )


class AuditLogger:
    """
    Dedicated audit logger for key lifecycle, access and availability events.
    Tokens must be masked before they reach this logger.
    """

    def __init__(self):
        self.logger = structlog.get_logger("audit")

    def log_key_event(
        self,
        event: str,
        masked_key: str,
        owner_id: str,
        project_id: Optional[str] = None,
        **details: Any
    ) -> None:
        """Log issuance, update and revocation of an API key"""
        self.logger.info(
            "key_event",
            action=event,
            key=masked_key,
            owner_id=owner_id,
            project_id=project_id,
            **details
        )

    def log_auth_failure(
        self,
        masked_key: str,
        reason: str,
        origin: Optional[str] = None
    ) -> None:
        """Log a rejected API key"""
        self.logger.warning(
            "auth_failure",
            key=masked_key,
            reason=reason,
            origin=origin
        )

    def log_retrieval(
        self,
        masked_key: str,
        project_id: Optional[str],
        endpoint: str,
        namespaces: list,
        result_count: int,
        processing_time_ms: float
    ) -> None:
        """Log a retrieval request for the audit trail"""
        self.logger.info(
            "retrieval",
            key=masked_key,
            project_id=project_id,
            endpoint=endpoint,
            namespaces=namespaces,
            result_count=result_count,
            processing_time_ms=processing_time_ms
        )

    def log_security_event(
        self,
        event_type: str,
        severity: str,
        details: Dict[str, Any]
    ) -> None:
        """Log security and availability events (fallback activation, rate limits)"""
        log_method = getattr(self.logger, severity.lower(), self.logger.warning)
        log_method(
            "security_event",
            event_type=event_type,
            **details
        )


class PerformanceLogger:
    """
    Track performance metrics for monitoring and optimization.
    """

    def __init__(self):
        self.logger = structlog.get_logger("performance")

    def log_vector_operation(
        self,
        operation: str,
        namespace: Optional[str],
        backend: str,
        duration_ms: float,
        count: int,
        top_k: Optional[int] = None
    ) -> None:
        """Log vector store upsert/query performance"""
        self.logger.info(
            "vector_operation",
            operation=operation,
            namespace=namespace,
            backend=backend,
            duration_ms=duration_ms,
            count=count,
            top_k=top_k
        )

    def log_embedding_generation(
        self,
        text_length: int,
        batch_size: int,
        failed: int,
        duration_ms: float,
        model: str
    ) -> None:
        """Log embedding generation performance"""
        self.logger.info(
            "embedding_generation",
            text_length=text_length,
            batch_size=batch_size,
            failed=failed,
            duration_ms=duration_ms,
            model=model
        )

    def log_ingestion(
        self,
        project_id: str,
        embedding_count: int,
        error_count: int,
        duration_ms: float
    ) -> None:
        """Log one ingestion run"""
        self.logger.info(
            "ingestion",
            project_id=project_id,
            embedding_count=embedding_count,
            error_count=error_count,
            duration_ms=duration_ms
        )


# Initialize loggers
audit_logger = AuditLogger()
performance_logger = PerformanceLogger()

__all__ = ["setup_logging", "audit_logger", "performance_logger"]
