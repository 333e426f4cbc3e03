# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .errors import AppError, Forbidden, Unauthenticated
from .services import session_service
from .services.credentials import extract_credential


def _error_response(exc: AppError):
    return jsonify(exc.to_dict()), exc.status_code


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require an authenticated, active user.

    Accepts "Authorization: Bearer <token>" or the session cookie; the header
    wins when both are present. Sets:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object
    - g.credential: The Credential the request authenticated with

    Returns 401 if the credential is missing, invalid, expired or revoked,
    or the user account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        credential = extract_credential(
            request.headers,
            request.cookies,
            current_app.config.get("AUTH_COOKIE_NAME", "authjs.session-token"),
        )

        if not credential.present:
            return _error_response(Unauthenticated("Not authorized, no token"))

        context = session_service.validate_session(credential.token)

        if not context:
            return _error_response(Unauthenticated("Not authorized, token failed"))

        g.current_user = context.user
        g.session_context = context
        g.credential = credential

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_name: str):
    """Require a named permission flag on the current user."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return _error_response(Unauthenticated("Authentication required"))

            user = g.current_user
            if not user.has_permission(permission_name):
                current_app.logger.info(
                    "Permission %s denied for user %s on %s %s",
                    permission_name, user.id, request.method, request.path,
                )
                return _error_response(Forbidden(
                    f"Access denied. Required permission: {permission_name}",
                    details={"required_permission": permission_name},
                ))

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_role(*roles):
    """Require the current user's role to be one of the given roles."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return _error_response(Unauthenticated("Authentication required"))

            if g.current_user.role not in roles:
                return _error_response(Forbidden(
                    f"User role {g.current_user.role} is not authorized to access this route",
                    details={"required_roles": list(roles)},
                ))

            return f(*args, **kwargs)

        return decorated_function
    return decorator
