from typing import Optional

OPERATOR_HEADER = "HTTP_X_OPERATOR"


class OperatorMiddleware:
    """Attach the acting operator name used for audit entries to the request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.operator = _resolve_operator(request)
        return self.get_response(request)


def _resolve_operator(request) -> Optional[str]:
    header = (request.META.get(OPERATOR_HEADER) or "").strip()
    if header:
        return header[:120]
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return user.get_username()
    return None
