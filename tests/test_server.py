from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from nko_lonko import server
from nko_lonko.localization import NKO_BUILTIN_CATEGORIES
from nko_lonko.server import app

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("LONKO_ARTICLES_PATH", str(FIXTURES / "articles.json"))
    monkeypatch.setenv("LONKO_STATE_DIR", str(tmp_path))
    monkeypatch.setenv("SANITY_PROJECT_ID", "proj")
    monkeypatch.setenv("SANITY_DATASET", "ds")
    server.reset_state()
    yield TestClient(app)
    server.reset_state()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_cors_wildcard_disables_credentials():
    cors = next(m for m in app.user_middleware if m.cls.__name__ == "CORSMiddleware")
    assert cors.kwargs["allow_origins"] == ["*"]
    assert cors.kwargs["allow_credentials"] is False


def test_feed_lists_newest_first(client):
    body = client.get("/api/articles").json()

    assert body["lang"] == "fr" and body["dir"] == "ltr"
    assert [a["slug"] for a in body["articles"]] == ["adn", "trous-noirs", "quantique"]
    assert body["has_more"] is False
    assert body["total"] == 3
    assert body["articles"][1]["cover_image_url"].startswith("https://cdn.sanity.io/images/proj/ds/")
    assert body["articles"][1]["date_display"] == "1er mars 2024"


def test_feed_filters_and_paginates(client):
    body = client.get("/api/articles", params={"category": "biology"}).json()
    assert [a["slug"] for a in body["articles"]] == ["adn"]

    body = client.get("/api/articles", params={"q": "quantique"}).json()
    assert [a["slug"] for a in body["articles"]] == ["quantique"]

    body = client.get("/api/articles", params={"limit": 1}).json()
    assert len(body["articles"]) == 1 and body["has_more"] is True


def test_feed_empty_message(client):
    body = client.get("/api/articles", params={"q": "introuvable"}).json()
    assert body["articles"] == []
    assert body["empty_message"] == "Aucun article trouvé pour le moment."


def test_feed_lang_override_does_not_persist(client, tmp_path):
    body = client.get("/api/articles", params={"lang": "nko"}).json()

    assert body["dir"] == "rtl"
    assert body["articles"][0]["category_label"] == NKO_BUILTIN_CATEGORIES["Biologie"]
    assert client.get("/api/language").json()["lang"] == "fr"
    assert not (tmp_path / "preferences.json").exists()


def test_invalid_lang_rejected(client):
    assert client.get("/api/articles", params={"lang": "en"}).status_code == 400


def test_toggle_language_persists(client, tmp_path):
    assert client.get("/api/language").json() == {"lang": "fr", "dir": "ltr"}

    resp = client.post("/api/language/toggle")

    assert resp.json() == {"lang": "nko", "dir": "rtl"}
    assert '"preferred-lang": "nko"' in (tmp_path / "preferences.json").read_text(encoding="utf-8")

    client.post("/api/language/toggle")
    assert client.get("/api/language").json()["dir"] == "ltr"


def test_accept_language_selects_nko(client):
    resp = client.get("/api/language", headers={"Accept-Language": "nqo-GN,fr;q=0.5"})
    assert resp.json()["lang"] == "nko"


def test_categories(client):
    categories = client.get("/api/categories").json()
    assert categories[0] == {"key": "all", "label": "Tous", "icon": "ph-star"}
    assert {"key": "biology", "label": "Biologie", "icon": "ph-dna"} in categories


def test_article_detail(client):
    body = client.get("/api/articles/trous-noirs").json()

    assert body["title_primary"] == "ߘߎ߰ߘߊ߲߬ ߝߌ߲"
    assert body["title_secondary"] == "(Les trous noirs)"
    assert [b["dir"] for b in body["blocks"][:2]] == ["rtl", "ltr"]
    assert body["author"]["name"] == "Fodé Camara"
    assert body["author_bio"] == "Chercheur en astrophysique."


def test_missing_article_is_404(client):
    assert client.get("/api/articles/nope").status_code == 404
    assert client.get("/articles/nope").status_code == 404


def test_article_html_page(client):
    resp = client.get("/articles/trous-noirs", params={"lang": "nko"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert '<html lang="nko" dir="rtl">' in resp.text
    assert "font-kigelia" in resp.text


def test_failed_fetch_shows_empty_feed(client, monkeypatch, tmp_path):
    monkeypatch.setenv("LONKO_ARTICLES_PATH", str(tmp_path / "missing.json"))
    server.reset_state()

    body = client.get("/api/articles").json()

    assert body["articles"] == []
    assert body["total"] == 0


def test_toggle_that_cannot_be_saved_is_503(client, tmp_path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    monkeypatch.setenv("LONKO_STATE_DIR", str(blocker))
    server.reset_state()

    resp = client.post("/api/language/toggle")

    assert resp.status_code == 503
    assert client.get("/api/language").json() == {"lang": "fr", "dir": "ltr"}
