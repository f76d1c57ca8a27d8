"""
User-facing messages for signup and verification failures.

Every failure path should tell the user what went wrong in plain words;
raw database and provider errors are mapped to one of these.
"""
import re
from typing import Any, Dict

ALREADY_REGISTERED = {
    'title': 'Already have an account',
    'description': 'This email is already registered. You can log in instead.',
}

RATE_LIMITED = {
    'title': 'Taking a short break',
    'description': 'Please wait a few minutes and try again.',
}

CODE_FAILED_TITLE = 'Code didn’t work'
RESEND_FAILED_TITLE = 'Resend didn’t go through'


def _matches(pattern: str, text: str) -> bool:
    return bool(re.search(pattern, text or '', re.IGNORECASE))


def _extract(error: Any):
    """Pull (message, code) out of an exception, a dict, or a string."""
    if error is None:
        return '', ''
    if isinstance(error, str):
        return error, ''
    if isinstance(error, dict):
        errors = error.get('errors')
        first = errors[0] if isinstance(errors, list) and errors else {}
        message = first.get('long_message') or first.get('message') or error.get('message') or ''
        return str(message), str(first.get('code') or error.get('code') or '')
    message = getattr(error, 'message', None) or str(error)
    code = getattr(error, 'code', '') or ''
    return str(message), str(code)


def get_signup_error_message(error: Any, context: str = 'signup') -> Dict[str, str]:
    """
    Map any signup error to {'title', 'description'}.

    Args:
        error: Exception, provider error dict, or message string
        context: 'signup', 'verification', or 'resend'
    """
    message, code = _extract(error)
    code_lower = code.lower()

    if code_lower == 'form_identifier_exists' or _matches(r'already exists|already registered|identifier exists', message):
        return dict(ALREADY_REGISTERED)

    if _matches(r'password|too weak|too short|minimum length', message) or 'password' in code_lower:
        return {
            'title': 'Password needs a small update',
            'description': 'Use at least 8 characters, one number, and one special character (e.g. !@#$%).',
        }

    if _matches(r'invalid email|valid email|email format', message) or 'email' in code_lower:
        return {
            'title': 'Check your email address',
            'description': 'Please enter a valid email address and try again.',
        }

    if _matches(r'phone|invalid number|e\.164|country code', message) or 'phone' in code_lower:
        return {
            'title': 'Phone number format',
            'description': 'Use a number with country code (e.g. +44 7123 456789). You can leave phone blank and add it later.',
        }

    if _matches(r'rate limit|too many|try again later|throttl', message) or 'rate' in code_lower:
        return dict(RATE_LIMITED)

    if context in ('verification', 'resend'):
        if _matches(r'expired|invalid code|incorrect code|wrong code', message):
            return {
                'title': CODE_FAILED_TITLE,
                'description': 'That code may have expired. Check your email for the latest code, or request a new one.',
            }

    if _matches(r'policy|permission|row-level security|RLS|access denied|new row violates', message):
        return {
            'title': 'We couldn’t save your account',
            'description': 'Something on our side prevented signup. Please try again in a moment or contact us if it keeps happening.',
        }

    if _matches(r'foreign key|violates foreign key|referenced', message):
        return {
            'title': 'Almost there',
            'description': 'We couldn’t link your account just yet. Please contact us and we’ll sort it out.',
        }

    if _matches(r'unique constraint|duplicate key|already exists', message):
        return dict(ALREADY_REGISTERED)

    if _matches(r'network|fetch|connection|timeout|unable to reach', message):
        return {
            'title': 'Connection issue',
            'description': 'Please check your internet connection and try again.',
        }

    raw = message.strip()
    if 15 < len(raw) < 200 and not re.match(r'^(unknown|error|failed)$', raw, re.IGNORECASE):
        if context == 'verification':
            title = CODE_FAILED_TITLE
        elif context == 'resend':
            title = RESEND_FAILED_TITLE
        else:
            title = 'Something went wrong'
        return {'title': title, 'description': raw}

    if context == 'verification':
        return {
            'title': CODE_FAILED_TITLE,
            'description': 'That code may be wrong or expired. Check your email and try again, or request a new code.',
        }
    if context == 'resend':
        return {
            'title': RESEND_FAILED_TITLE,
            'description': 'Please wait a minute and try again, or check your email for an existing code.',
        }
    return {
        'title': 'Something went wrong',
        'description': 'We couldn’t create your account just now. Please try again in a moment or contact us if it keeps happening.',
    }
