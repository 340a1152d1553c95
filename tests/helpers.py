"""Stateless helpers shared by the endpoint tests."""


def refresh_cookie_from(response) -> str:
    """Extract the ``jwt`` refresh token from a login response's Set-Cookie header."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name.strip() == "jwt":
            return rest.split(";", 1)[0].strip('"')
    raise AssertionError("login response did not set the jwt cookie")


def post_payload(title: str = "Hello", **overrides) -> dict:
    payload = {"title": title, "body": f"{title} body", "isDraft": False}
    payload.update(overrides)
    return payload
