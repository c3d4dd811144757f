"""
Logging configuration for the dental lab backend.
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict, Iterable, Optional
from dental_lab.core.config import settings


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _rotating_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=settings.LOG_MAX_SIZE,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """Configure application logging."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))

    # Clear existing handlers
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if settings.LOG_TO_FILE:
        file_handler = _rotating_handler(Path(settings.LOG_FILE), formatter)
        file_handler.setLevel(logging.INFO)
        root_logger.addHandler(file_handler)

    # Console handler for development
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    setup_specific_loggers()

    logging.info("Logging configuration completed")
    logging.info(f"Log level: {settings.LOG_LEVEL}")


def setup_specific_loggers() -> None:
    """Configure specific module loggers."""
    sqlalchemy_logger = logging.getLogger('sqlalchemy')
    sqlalchemy_logger.setLevel(logging.INFO if settings.DEBUG else logging.WARNING)

    logging.getLogger('uvicorn').setLevel(logging.INFO)
    logging.getLogger('dental_lab').setLevel(logging.INFO)
    logging.getLogger('dental_lab.security').setLevel(logging.INFO)
    logging.getLogger('dental_lab.audit').setLevel(logging.INFO)
    logging.getLogger('dental_lab.api').setLevel(logging.INFO)


class SecurityLogger:
    """Specialized logger for security events."""

    def __init__(self):
        self.logger = logging.getLogger('dental_lab.security')

        if settings.LOG_TO_FILE:
            security_formatter = logging.Formatter(
                fmt='%(asctime)s - SECURITY - %(levelname)s - %(message)s',
                datefmt=DATE_FORMAT
            )
            log_path = Path(settings.LOG_FILE).parent / "security" / "security.log"
            self.logger.addHandler(_rotating_handler(log_path, security_formatter))

    def log_login_attempt(self, email: str, success: bool, reason: str = ""):
        """Log login attempt."""
        status = "SUCCESS" if success else "FAILED"
        suffix = f" - {reason}" if reason else ""
        if success:
            self.logger.info(f"LOGIN_ATTEMPT - {status} - {email}{suffix}")
        else:
            self.logger.warning(f"LOGIN_ATTEMPT - {status} - {email}{suffix}")

    def log_registration(self, user_id: str, email: str):
        self.logger.info(f"REGISTER - User {user_id} - {email}")

    def log_logout(self, user_id: str, revoked_sessions: int):
        """Log user logout."""
        self.logger.info(f"LOGOUT - User {user_id} - {revoked_sessions} session(s) revoked")

    def log_token_refresh(self, user_id: Optional[str], success: bool):
        status = "SUCCESS" if success else "FAILED"
        self.logger.info(f"TOKEN_REFRESH - {status} - User {user_id or 'unknown'}")

    def log_password_change(self, user_id: str, method: str):
        self.logger.info(f"PASSWORD_CHANGE - User {user_id} - {method}")

    def log_permission_denied(self, user_id: str, resource: str, reason: str):
        """Log permission denied."""
        self.logger.warning(f"PERMISSION_DENIED - User {user_id} - {resource} - {reason}")


class AuditLogger:
    """Logger for audit trails of data changes."""

    def __init__(self):
        self.logger = logging.getLogger('dental_lab.audit')

        if settings.LOG_TO_FILE:
            audit_formatter = logging.Formatter(
                fmt='%(asctime)s - AUDIT - %(message)s',
                datefmt=DATE_FORMAT
            )
            log_path = Path(settings.LOG_FILE).parent / "audit" / "audit.log"
            self.logger.addHandler(_rotating_handler(log_path, audit_formatter))

    def log_data_change(
        self,
        user_id: Optional[str],
        table: str,
        record_id: str,
        action: str,
        changes: Optional[Dict[str, Any]] = None
    ):
        """Log data changes for audit trail."""
        actor = f"User {user_id}" if user_id else "System"
        self.logger.info(f"DATA_CHANGE - {actor} - {table} {record_id} - {action} - {changes or {}}")

    def log_status_transition(self, table: str, record_id: str, old: Optional[str], new: str):
        self.logger.info(f"STATUS_TRANSITION - {table} {record_id} - {old} -> {new}")

    def log_bulk_change(self, table: str, keys: Iterable[str], action: str):
        self.logger.info(f"BULK_CHANGE - {table} - {action} - {sorted(keys)}")


# Global instances
security_logger = SecurityLogger()
audit_logger = AuditLogger()


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
