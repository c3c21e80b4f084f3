import io

from starlette.datastructures import Headers, UploadFile


def make_upload(filename: str, content_type: str, data: bytes = b"x" * 16) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        size=len(data),
        headers=Headers({"content-type": content_type}),
    )


def upload_part(filename: str, content_type: str, data: bytes = b"x" * 16) -> tuple:
    """httpx multipart tuple for files=[(field, part), ...]."""
    return (filename, data, content_type)


ADMIN_HEADERS = {"X-Admin-Key": "test-admin"}
