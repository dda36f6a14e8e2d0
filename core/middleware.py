class BearerTokenCsrfExemptMiddleware:
    """
    Requests authenticated with an ``Authorization: Bearer`` header carry no
    ambient credentials, so CSRF checks are skipped for them. Cookie sessions
    still go through ``CsrfViewMiddleware``.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        header = request.META.get("HTTP_AUTHORIZATION", "")
        if header.lower().startswith("bearer "):
            request._dont_enforce_csrf_checks = True
        return self.get_response(request)
