import io
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image

from handscript.config import settings
from handscript.exceptions import UpstreamError
from handscript.main import app, mount_public
from handscript.security import add_cors

GENERIC_ERROR = {"error": "Failed to process image. Please try again."}


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def error_log():
    with patch("handscript.routes.analyze.log_error", new=AsyncMock()) as mock_log:
        yield mock_log


def _model_reply(text: str):
    return patch(
        "handscript.services.transcription.request_transcription",
        new=AsyncMock(return_value=text),
    )


class TestAnalyzeMissingInput:
    def test_no_body(self, client: TestClient) -> None:
        resp = client.post("/analyze")
        assert resp.status_code == 400
        assert resp.json() == {"error": "No image uploaded"}

    def test_form_without_image_field(self, client: TestClient) -> None:
        resp = client.post("/analyze", files={"photo": ("a.png", b"123", "image/png")})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No image uploaded"}

    def test_empty_file(self, client: TestClient) -> None:
        resp = client.post("/analyze", files={"image": ("a.png", b"", "image/png")})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No image uploaded"}

    def test_image_sent_as_text_field(self, client: TestClient) -> None:
        resp = client.post("/analyze", data={"image": "not-a-file"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No image uploaded"}


class TestAnalyzeSuccess:
    def test_returns_local_word_count(self, client: TestClient, small_png_bytes: bytes) -> None:
        with _model_reply("WORD COUNT: 40\n\nTRANSCRIPTION:\nhello world\n"):
            resp = client.post("/analyze", files={"image": ("note.png", small_png_bytes, "image/png")})
        assert resp.status_code == 200
        assert resp.json() == {"wordCount": 2, "transcription": "hello world"}

    def test_reply_without_marker_is_returned_whole(self, client: TestClient, small_png_bytes: bytes) -> None:
        with _model_reply("some text"):
            resp = client.post("/analyze", files={"image": ("note.png", small_png_bytes, "image/png")})
        assert resp.status_code == 200
        assert resp.json() == {"wordCount": 2, "transcription": "some text"}

    def test_twenty_megabyte_upload_is_fitted_and_sent_as_jpeg(self, client: TestClient) -> None:
        buf = io.BytesIO()
        Image.new("RGB", (2600, 2600), "white").save(buf, format="BMP")
        raw = buf.getvalue()
        assert len(raw) > 20 * 1000 * 1000

        mock_request = AsyncMock(return_value="TRANSCRIPTION:\nDear diary, today was long.")
        with patch("handscript.services.transcription.request_transcription", new=mock_request):
            resp = client.post("/analyze", files={"image": ("page.bmp", raw, "image/bmp")})

        assert resp.status_code == 200
        body = resp.json()
        assert body["wordCount"] == 5
        assert body["transcription"] == "Dear diary, today was long."

        fitted, prompt = mock_request.call_args.args
        assert fitted.media_type == "image/jpeg"
        assert fitted.size < settings.IMAGE_BUDGET_BYTES
        assert Image.open(io.BytesIO(fitted.data)).size == (2000, 2000)
        assert "TRANSCRIPTION:" in prompt


class TestAnalyzeErrors:
    def test_upload_over_ingress_cap(self, client: TestClient, small_png_bytes: bytes, monkeypatch) -> None:
        monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 16)
        resp = client.post("/analyze", files={"image": ("note.png", small_png_bytes, "image/png")})
        assert resp.status_code == 413
        assert "upload limit" in resp.json()["error"]

    def test_unreadable_image(self, client: TestClient) -> None:
        resp = client.post("/analyze", files={"image": ("note.png", b"not an image", "image/png")})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Uploaded file is not a readable image"}

    def test_image_that_never_fits(self, client: TestClient, small_png_bytes: bytes, monkeypatch) -> None:
        monkeypatch.setattr(settings, "IMAGE_BUDGET_BYTES", 10)
        with _model_reply("unused") as mock_request:
            resp = client.post("/analyze", files={"image": ("note.png", small_png_bytes, "image/png")})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Image is too large to process. Please upload a smaller image."}
        mock_request.assert_not_awaited()

    def test_upstream_failure_is_generic_and_logged(
        self, client: TestClient, small_png_bytes: bytes, error_log: AsyncMock
    ) -> None:
        failing = AsyncMock(side_effect=UpstreamError("Vision model API error: 529 overloaded"))
        with patch("handscript.services.transcription.request_transcription", new=failing):
            resp = client.post("/analyze", files={"image": ("note.png", small_png_bytes, "image/png")})
        assert resp.status_code == 500
        assert resp.json() == GENERIC_ERROR
        error_log.assert_awaited_once()
        stage, message = error_log.call_args.args[:2]
        assert stage == "transcribe"
        assert "529 overloaded" in message

    def test_unexpected_failure_is_generic(
        self, client: TestClient, small_png_bytes: bytes, error_log: AsyncMock
    ) -> None:
        with patch("handscript.routes.analyze.get_active_prompt", new=AsyncMock(side_effect=RuntimeError("disk"))):
            resp = client.post("/analyze", files={"image": ("note.png", small_png_bytes, "image/png")})
        assert resp.status_code == 500
        assert resp.json() == GENERIC_ERROR
        error_log.assert_awaited_once()


class TestAuxiliaryRoutes:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {
            "status": "ok",
            "model": settings.OPENAI_MODEL_TRANSCRIBE,
            "promptVariant": settings.PROMPT_VARIANT,
        }

    def test_active_prompt(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings, "PROMPT_VARIANT", "rare_blanks")
        monkeypatch.setattr(settings, "PRESERVE_LINE_BREAKS", True)
        monkeypatch.setattr(settings, "PROMPT_FILE", None)
        body = client.get("/prompts/active").json()
        assert body["variant"] == "rare_blanks"
        assert body["preserveLineBreaks"] is True
        assert "Preserve the original line breaks" in body["prompt"]

    def test_index_page_is_served(self, tmp_path) -> None:
        (tmp_path / "index.html").write_text("<form action=\"/analyze\"></form>", encoding="utf-8")
        site = FastAPI()
        assert mount_public(site, str(tmp_path)) is True
        resp = TestClient(site).get("/")
        assert resp.status_code == 200
        assert "/analyze" in resp.text

    def test_missing_public_dir_is_not_mounted(self, tmp_path) -> None:
        site = FastAPI()
        assert mount_public(site, str(tmp_path / "absent")) is False
        assert not any(getattr(r, "name", None) == "public" for r in site.routes)

    def test_cors_preflight_allows_any_origin_by_default(self, client: TestClient) -> None:
        resp = client.options(
            "/analyze",
            headers={"Origin": "https://example.com", "Access-Control-Request-Method": "POST"},
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_cors_allow_list_echoes_listed_origin_only(self, monkeypatch) -> None:
        monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://notes.example, https://other.example")
        site = FastAPI()
        add_cors(site)

        @site.post("/analyze")
        def _analyze():
            return {}

        preflight = {"Access-Control-Request-Method": "POST"}
        site_client = TestClient(site)
        allowed = site_client.options("/analyze", headers={"Origin": "https://notes.example", **preflight})
        assert allowed.headers["access-control-allow-origin"] == "https://notes.example"
        assert allowed.headers["access-control-allow-credentials"] == "true"

        denied = site_client.options("/analyze", headers={"Origin": "https://evil.example", **preflight})
        assert denied.status_code == 400
