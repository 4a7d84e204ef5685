from signed_upload.client.models import SignResult, UploadFile
from signed_upload.client.naming import (
    build_signing_query,
    build_upload_headers,
    content_disposition,
    guess_mime_type,
    scrub_filename,
)
from signed_upload.client.options import UploadOptions


def make_sign_result(**headers) -> SignResult:
    return SignResult(signed_url="https://bucket.example/put", public_url="/pub/f.png", headers=headers)


def test_scrub_filename_strips_unsafe_characters():
    assert scrub_filename("my résumé.pdf") == "myrsum.pdf"
    assert scrub_filename("../etc/passwd") == "..etcpasswd"
    assert scrub_filename("report_v2-final.tar.gz") == "report_v2-final.tar.gz"
    assert scrub_filename("a b\tc?d&e=f") == "abcdef"


def test_scrub_filename_is_idempotent():
    for name in ["my résumé.pdf", "photo (1).JPG", "日本語.txt", "", "--..__"]:
        once = scrub_filename(name)
        assert scrub_filename(once) == once


def test_guess_mime_type_prefers_declared_type():
    assert guess_mime_type(UploadFile("a.png", b"", "image/webp")) == "image/webp"
    assert guess_mime_type(UploadFile("a.png", b"")) == "image/png"
    assert guess_mime_type(UploadFile("noext", b"")) == "application/octet-stream"


def test_content_disposition_policies():
    assert content_disposition("", "image/png", "f.png") is None
    assert content_disposition("auto", "image/png", "f.png") == 'inline; filename="f.png"'
    assert content_disposition("auto", "application/pdf", "f.pdf") == 'attachment; filename="f.pdf"'
    assert content_disposition("attachment", "image/png", "f.png") == 'attachment; filename="f.png"'


def test_build_signing_query_encodes_type_and_path():
    options = UploadOptions(s3_path="users/1/", signing_url_query_params={"token": "abc"})
    query = build_signing_query(UploadFile("my résumé.pdf", b"", "application/pdf"), options)
    assert query == "?objectName=myrsum.pdf&contentType=application%2Fpdf&path=users%2F1%2F&token=abc"


def test_build_signing_query_computes_params_per_call():
    counter = {"n": 0}

    def params():
        counter["n"] += 1
        return {"n": counter["n"]}

    options = UploadOptions(signing_url_query_params=params)
    file = UploadFile("a.txt", b"", "text/plain")
    assert build_signing_query(file, options).endswith("&n=1")
    assert build_signing_query(file, options).endswith("&n=2")


def test_upload_headers_default_acl_and_disposition():
    options = UploadOptions(content_disposition="auto")
    headers = build_upload_headers(UploadFile("f.png", b"x", "image/png"), make_sign_result(), options)
    assert headers == {
        "content-type": "image/png",
        "content-disposition": 'inline; filename="f.png"',
        "x-amz-acl": "public-read",
    }


def test_upload_headers_override_order():
    options = UploadOptions(upload_request_headers=lambda: {"Cache-Control": "no-cache", "X-Amz-Acl": "private"})
    sign_result = make_sign_result(**{"Cache-Control": "max-age=60", "X-Amz-Meta-Owner": "1"})
    headers = build_upload_headers(UploadFile("f.pdf", b"x", "application/pdf"), sign_result, options)
    assert headers == {
        "content-type": "application/pdf",
        "cache-control": "no-cache",
        "x-amz-meta-owner": "1",
        "x-amz-acl": "private",
    }


def test_empty_upload_headers_still_suppress_default_acl():
    options = UploadOptions(upload_request_headers={})
    headers = build_upload_headers(UploadFile("f.pdf", b"x", "application/pdf"), make_sign_result(), options)
    assert "x-amz-acl" not in headers
