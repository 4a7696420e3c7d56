from fastapi import Request


async def read_body(request: Request) -> dict:
    """Read a JSON or form-encoded request body into a dict.

    Missing or unparsable bodies yield an empty dict so that handlers report
    the missing field instead of a parse error.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
