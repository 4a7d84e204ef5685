import mimetypes
import re
from urllib.parse import quote

from signed_upload.client.models import SignResult, UploadFile
from signed_upload.core.constants import DEFAULT_MIME_TYPE

UNSAFE_FILENAME_REGEX = re.compile(r"[^\w\d_\-\.]+", re.ASCII)


def scrub_filename(filename: str) -> str:
    return UNSAFE_FILENAME_REGEX.sub("", filename)


def guess_mime_type(file: UploadFile) -> str:
    if file.type:
        return file.type
    guessed, _ = mimetypes.guess_type(file.name)
    return guessed or DEFAULT_MIME_TYPE


def encode_component(value: str) -> str:
    # same reserved set as encodeURIComponent
    return quote(value, safe="-_.!~*'()")


def content_disposition(policy: str, mime_type: str, filename: str) -> str | None:
    if not policy:
        return None
    disposition = policy
    if policy == "auto":
        disposition = "inline" if mime_type.startswith("image/") else "attachment"
    return f'{disposition}; filename="{filename}"'


def build_signing_query(file: UploadFile, options) -> str:
    object_name = options.scrub_filename(file.name)
    query = f"?objectName={object_name}&contentType={encode_component(guess_mime_type(file))}"
    if options.s3_path:
        query += f"&path={encode_component(options.s3_path)}"
    for key, value in options.resolve(options.signing_url_query_params).items():
        query += f"&{key}={value}"
    return query


def build_upload_headers(file: UploadFile, sign_result: SignResult, options) -> dict[str, str]:
    mime_type = guess_mime_type(file)
    headers = {"content-type": mime_type}

    disposition = content_disposition(options.content_disposition, mime_type, options.scrub_filename(file.name))
    if disposition:
        headers["content-disposition"] = disposition

    if options.upload_request_headers is None:
        headers["x-amz-acl"] = "public-read"

    overrides = [sign_result.headers]
    if options.upload_request_headers is not None:
        overrides.append(options.resolve(options.upload_request_headers))
    for source in overrides:
        for key, value in source.items():
            headers[key.lower()] = str(value)
    return headers
