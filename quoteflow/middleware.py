"""Middleware for authentication context."""
from functools import wraps
from flask import session, g, current_app

from quoteflow.exceptions import UnauthorizedError


def load_user():
    """
    Load the current user id into g.

    Authentication itself happens upstream; the login flow only has to put
    the tenant's user id in the session. Sets g.user_id (None if anonymous).
    """
    g.user_id = None
    try:
        user_id = session.get('user_id')
        if user_id:
            g.user_id = str(user_id)
    except Exception as e:
        current_app.logger.error(f"Error in load_user: {e}")


def require_login(f):
    """
    Decorator: Require user to be logged in.

    API endpoints answer 401 JSON instead of redirecting.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.get('user_id'):
            raise UnauthorizedError('Authentification requise')
        return f(*args, **kwargs)
    return decorated_function
