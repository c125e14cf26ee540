import pytest
from fastapi.testclient import TestClient

from webagent.main import app, get_site_store
from webagent.site_store import FileSiteStore

client = TestClient(app)

PAGES = [
    {"name": "Home", "path": "/index.html", "html": "<h1>home</h1>"},
    {"name": "About", "path": "/about.html", "html": "<p>about</p>"},
]


@pytest.fixture()
def store(tmp_path):
    s = FileSiteStore(tmp_path / "sites", page_size=2, recent_limit=2)
    app.dependency_overrides[get_site_store] = lambda: s
    yield s
    app.dependency_overrides.clear()


def test_host_then_fetch(store):
    r = client.post("/api/host", json={"pages": PAGES, "metadata": {"name": "Portfolio"}})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["url"] == f"/sites/{body['siteId']}"

    site = client.get(f"/api/sites/{body['siteId']}").json()
    assert site["name"] == "Portfolio"
    assert site["pageCount"] == 2
    assert site["pages"][1]["content"] == "<p>about</p>"


@pytest.mark.parametrize("payload", [{}, {"pages": "nope"}, {"metadata": {"name": "x"}}])
def test_host_requires_pages(store, payload):
    r = client.post("/api/host", json=payload)
    assert r.status_code == 400
    assert r.json() == {"error": "Pages array is required"}


def test_unknown_site_is_404(store):
    r = client.get("/api/sites/not-a-site")
    assert r.status_code == 404
    assert r.json() == {"error": "Site not found"}


def test_listing_pages_through_sites(store):
    ids = [client.post("/api/host", json={"pages": PAGES[:1]}).json()["siteId"] for _ in range(3)]

    first = client.get("/api/sites").json()
    assert [s["siteId"] for s in first["sites"]] == [ids[2], ids[1]]
    assert first["hasMore"] is True
    assert "pages" not in first["sites"][0]

    second = client.get("/api/sites", params={"startAfter": first["nextStartAfter"]}).json()
    assert [s["siteId"] for s in second["sites"]] == [ids[0]]
    assert second["hasMore"] is False

    recent = client.get("/api/recentsites").json()
    assert len(recent["sites"]) == 2
