"""
Security service for input validation, normalisation, and security logging.
"""

import re
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone, tzinfo
from functools import wraps
import hashlib

from flask import request, jsonify

logger = logging.getLogger(__name__)


class SecurityService:
    """Service for handling security-related functionality."""

    # Validation patterns
    USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.\-]{3,30}$')
    EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
    COLOR_PATTERN = re.compile(r'^#[0-9A-Fa-f]{6}$')
    URL_PATTERN = re.compile(r'^https?://\S+$', re.IGNORECASE)
    CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')

    MIN_PASSWORD_LENGTH = 4
    MAX_NAME_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 1000
    MAX_CATEGORY_NAME_LENGTH = 100
    MAX_PRICE = 1_000_000

    # Notification types
    VALID_NOTIFICATION_TYPES = {'EVENT_SHARE', 'EVENT_LEAVE'}

    @classmethod
    def clean_text(cls, text: Any) -> str:
        """
        Normalise free text before storage.

        Strips surrounding whitespace and control characters. HTML escaping
        is left to the template layer.
        """
        if not isinstance(text, str):
            return ""

        return cls.CONTROL_CHARS.sub('', text).strip()

    @classmethod
    def clean_optional_text(cls, text: Any) -> Optional[str]:
        """Clean text, turning empty strings into None."""
        cleaned = cls.clean_text(text)
        return cleaned or None

    @classmethod
    def validate_username(cls, username: str) -> bool:
        """
        Validate username format.

        Args:
            username: Username to validate

        Returns:
            True if valid, False otherwise
        """
        if not username or not isinstance(username, str):
            return False

        return bool(cls.USERNAME_PATTERN.match(username.strip()))

    @classmethod
    def validate_password(cls, password: str) -> bool:
        """Validate password length."""
        return isinstance(password, str) and len(password) >= cls.MIN_PASSWORD_LENGTH

    @classmethod
    def validate_email(cls, email: Optional[str]) -> bool:
        """Validate optional email address."""
        if email is None or email == '':
            return True

        return isinstance(email, str) and bool(cls.EMAIL_PATTERN.match(email.strip()))

    @classmethod
    def validate_name(cls, name: str, max_length: int = MAX_NAME_LENGTH) -> bool:
        """Validate a required display name."""
        cleaned = cls.clean_text(name)
        return 0 < len(cleaned) <= max_length

    @classmethod
    def validate_description(cls, description: Optional[str]) -> bool:
        """Validate optional description text."""
        if description is None:
            return True

        if not isinstance(description, str):
            return False

        return len(cls.clean_text(description)) <= cls.MAX_DESCRIPTION_LENGTH

    @classmethod
    def validate_color(cls, color: Optional[str]) -> bool:
        """Validate optional #RRGGBB colour."""
        if color is None or color == '':
            return True

        return isinstance(color, str) and bool(cls.COLOR_PATTERN.match(color.strip()))

    @classmethod
    def validate_url(cls, url: Optional[str]) -> bool:
        """Validate optional http(s) URL."""
        if url is None or url == '':
            return True

        return isinstance(url, str) and bool(cls.URL_PATTERN.match(url.strip()))

    @classmethod
    def parse_price(cls, value: Any) -> Optional[float]:
        """
        Parse a price from form or JSON input.

        Accepts numbers and strings using either '.' or ',' as decimal
        separator. Empty input gives None.

        Raises:
            ValueError: if the value is not a valid non-negative price
        """
        if value is None or value == '':
            return None

        if isinstance(value, bool):
            raise ValueError("Invalid price")

        if isinstance(value, str):
            value = value.strip().replace(',', '.')
            if not value:
                return None

        price = float(value)
        if price < 0 or price > cls.MAX_PRICE:
            raise ValueError("Price must be between 0 and 1000000")

        return round(price, 2)

    @classmethod
    def parse_date(cls, value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
        """
        Parse a target date from form or JSON input.

        'YYYY-MM-DD' gives midnight of that day. A datetime carrying an
        offset is converted to wall-clock time in tz (the server's local
        zone when tz is None) and returned naive, the way it is stored.
        Empty input gives None.

        Raises:
            ValueError: if the value cannot be parsed
        """
        if value is None or value == '':
            return None

        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            value = value.strip()
            if len(value) == 10:
                return datetime.strptime(value, '%Y-%m-%d')
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        else:
            raise ValueError(f"Invalid date: {value!r}")

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(tz).replace(tzinfo=None)
        return parsed

    @classmethod
    def parse_bool(cls, value: Any, default: bool = False) -> bool:
        """Parse a checkbox or JSON boolean."""
        if value is None:
            return default

        if isinstance(value, bool):
            return value

        return str(value).strip().lower() in ('1', 'true', 'on', 'yes')

    @classmethod
    def validate_json_data(cls, data: Dict[str, Any], required_fields: List[str],
                           optional_fields: Optional[List[str]] = None) -> Dict[str, List[str]]:
        """
        Validate JSON data structure and fields.

        Args:
            data: Data dictionary to validate
            required_fields: List of required field names
            optional_fields: List of optional field names

        Returns:
            Dictionary with 'errors' and 'warnings' lists
        """
        errors = []
        warnings = []

        if not isinstance(data, dict):
            errors.append("Invalid data format - expected JSON object")
            return {'errors': errors, 'warnings': warnings}

        # Check required fields
        for field in required_fields:
            if field not in data:
                errors.append(f"Missing required field: {field}")
            elif data[field] is None:
                errors.append(f"Field '{field}' cannot be null")

        # Check for unexpected fields
        if optional_fields is not None:
            allowed_fields = set(required_fields) | set(optional_fields)
            for field in data:
                if field not in allowed_fields:
                    warnings.append(f"Unexpected field: {field}")

        return {'errors': errors, 'warnings': warnings}

    @classmethod
    def validate_event_data(cls, data: Dict[str, Any]) -> Dict[str, List[str]]:
        """
        Validate event creation/update data.

        Args:
            data: Event data to validate (camelCase keys)

        Returns:
            Dictionary with validation results
        """
        errors = []
        warnings = []

        name = data.get('name')
        if not name:
            errors.append("Event name is required")
        elif not cls.validate_name(name):
            errors.append(f"Invalid event name (1-{cls.MAX_NAME_LENGTH} characters)")

        event_type = data.get('eventType')
        if not event_type or not cls.clean_text(event_type):
            errors.append("Event type is required")

        has_target_date = cls.parse_bool(data.get('hasTargetDate'), default=True)
        target_date = data.get('targetDate')
        if has_target_date and target_date:
            try:
                cls.parse_date(target_date)
            except ValueError:
                errors.append("Invalid target date")
        elif has_target_date:
            warnings.append("Event has no target date; no countdown will be shown")

        return {'errors': errors, 'warnings': warnings}

    @classmethod
    def validate_item_data(cls, data: Dict[str, Any]) -> Dict[str, List[str]]:
        """
        Validate shopping item data.

        Args:
            data: Shopping item data to validate (camelCase keys)

        Returns:
            Dictionary with validation results
        """
        errors = []
        warnings = []

        name = data.get('name')
        if not name:
            errors.append("Item name is required")
        elif not cls.validate_name(name):
            errors.append(f"Invalid item name (1-{cls.MAX_NAME_LENGTH} characters)")

        if not cls.validate_description(data.get('description')):
            errors.append(f"Description too long (max {cls.MAX_DESCRIPTION_LENGTH} characters)")

        try:
            cls.parse_price(data.get('price'))
        except (TypeError, ValueError):
            errors.append("Invalid price")

        if not cls.validate_url(data.get('purchaseUrl')):
            errors.append("Purchase link must be an http(s) URL")

        photos = data.get('photos') or []
        if not isinstance(photos, list):
            errors.append("Photos must be a list")
        else:
            for photo in photos:
                if not isinstance(photo, dict):
                    errors.append("Invalid photo entry")
                elif not cls.validate_url(photo.get('imageUrl')):
                    errors.append(f"Invalid photo URL: {photo.get('imageUrl')}")

        return {'errors': errors, 'warnings': warnings}

    @classmethod
    def validate_category_data(cls, data: Dict[str, Any]) -> Dict[str, List[str]]:
        """Validate category creation/update data."""
        errors = []

        name = data.get('name')
        if not name or not cls.validate_name(name, cls.MAX_CATEGORY_NAME_LENGTH):
            errors.append(f"Category name is required (1-{cls.MAX_CATEGORY_NAME_LENGTH} characters)")

        if not cls.validate_color(data.get('color')):
            errors.append("Color must be in #RRGGBB format")

        return {'errors': errors, 'warnings': []}

    @classmethod
    def hash_username(cls, username: str) -> str:
        """
        Create a hash of a username for logging (privacy protection).

        Args:
            username: Username to hash

        Returns:
            Hashed username
        """
        return hashlib.sha256(username.encode()).hexdigest()[:8]

    @classmethod
    def log_security_event(cls, event_type: str, username: Optional[str] = None,
                           details: Optional[Dict[str, Any]] = None, severity: str = 'INFO'):
        """
        Log security-related events.

        Args:
            event_type: Type of security event
            username: Username involved (will be hashed)
            details: Additional details
            severity: Log severity level
        """
        log_data = {
            'event_type': event_type,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'severity': severity
        }

        if username:
            log_data['user_hash'] = cls.hash_username(username)

        if details:
            log_data['details'] = details

        log_level = getattr(logging, severity.upper(), logging.INFO)
        logger.log(log_level, f"Security event: {log_data}")


# Validation decorators
def validate_json(required_fields: List[str], optional_fields: Optional[List[str]] = None):
    """Decorator for validating JSON request data."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return jsonify({
                    'success': False,
                    'error': {'code': 'INVALID_DATA', 'message': 'JSON data required'}
                }), 400

            validation_result = SecurityService.validate_json_data(
                data, required_fields, optional_fields
            )

            if validation_result['errors']:
                return jsonify({
                    'success': False,
                    'error': {'code': 'VALIDATION_FAILED', 'message': 'Validation failed',
                              'details': validation_result['errors']}
                }), 400

            # Attach validated data to request
            request.validated_data = data

            # Log warnings if any
            if validation_result['warnings']:
                logger.warning(f"Validation warnings: {validation_result['warnings']}")

            return f(*args, **kwargs)

        return decorated_function
    return decorator
