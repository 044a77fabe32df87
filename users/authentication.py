from rest_framework_simplejwt.authentication import JWTAuthentication


class AuthorizeHeaderJWTAuthentication(JWTAuthentication):
    """
    JWT authentication that reads the standard `Authorization: Bearer <token>`
    header and falls back to the bare `Authorize` header used by older clients.
    Example requests:
        Authorization: Bearer <your_access_token>
        Authorize: <your_access_token>
    """

    def get_header(self, request):
        header = super().get_header(request)
        if header is not None:
            return header

        header = request.META.get("HTTP_AUTHORIZE")  # Django converts headers to HTTP_<NAME>
        if isinstance(header, str):
            header = header.encode("iso-8859-1")  # ensure it's bytes
        return header

    def get_raw_token(self, header):
        if header is None:
            return None
        parts = header.split()
        if len(parts) == 1:
            return parts[0]
        return super().get_raw_token(header)
