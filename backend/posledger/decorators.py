# Overview: Request decorators for API routes.

from functools import wraps
from flask import g, jsonify

from .errors import NoActiveCashier
from .services.terminal_service import get_terminal


def with_terminal(f):
    """Expose the app's Terminal as g.terminal."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.terminal = get_terminal()
        return f(*args, **kwargs)
    return decorated_function


def require_cashier(f):
    """
    Require a signed-in cashier on the terminal.

    Sets g.terminal and g.cashier_id; returns 401 with NO_ACTIVE_CASHIER
    otherwise.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        terminal = get_terminal()
        if not terminal.cashier_id:
            return jsonify(NoActiveCashier("No cashier is signed in").to_dict()), 401
        g.terminal = terminal
        g.cashier_id = terminal.cashier_id
        return f(*args, **kwargs)
    return decorated_function
