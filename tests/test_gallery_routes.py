import io
import zipfile

import pytest
from sqlalchemy import event

CDN = "https://res.cloudinary.com/demo/image/upload"


def count_queries(db_engine):
    statements = []
    event.listen(
        db_engine.sync_engine,
        "before_cursor_execute",
        lambda conn, cursor, statement, *args: statements.append(statement),
    )
    return statements


@pytest.mark.asyncio
async def test_remote_only_gallery_is_returned_verbatim(api, upstream, db_engine):
    payload = {
        "id": "7f1c",
        "name": "Smith Wedding",
        "slug": "smith-wedding",
        "event_date": "2024-09-14",
        "subheading": None,
        "status": "ACTIVE",
        "header_media_url": None,
        "header_media_type": None,
        "photos": [{"id": "p1", "url": f"{CDN}/v9/smith/1.jpg", "studio_only_field": True}],
        "studio": {"name": "Lumen"},
    }
    upstream.studio("smith-wedding", json=payload)
    statements = count_queries(db_engine)

    r = await api.get("/api/gallery/smith-wedding")

    assert r.status_code == 200
    assert r.json() == payload
    assert statements == []


@pytest.mark.asyncio
async def test_studio_miss_falls_back_to_database(api, upstream, seed_gallery):
    upstream.studio("garden-party", 404)
    await seed_gallery(
        "garden-party",
        name="Garden Party",
        subheading="June in the park",
        status=None,
        header_media_url="https://res.cloudinary.com/demo/video/upload/intro.mp4",
        header_media_type="video",
        photos=[
            {"url": f"{CDN}/old.jpg", "filename": "old.jpg", "public_id": "gp/old"},
            {"url": f"{CDN}/new.jpg", "filename": "new.jpg", "public_id": "gp/new"},
        ],
    )

    r = await api.get("/api/gallery/garden-party")

    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "Garden Party"
    assert body["slug"] == "garden-party"
    assert body["event_date"] == "2024-06-01"
    assert body["subheading"] == "June in the park"
    assert body["status"] == "ACTIVE"
    assert body["header_media_type"] == "video"
    assert [p["filename"] for p in body["photos"]] == ["new.jpg", "old.jpg"]
    assert set(body["photos"][0]) >= {"id", "url", "filename", "public_id", "created_at"}


@pytest.mark.asyncio
async def test_studio_error_falls_back_to_database(api, upstream, seed_gallery):
    upstream.studio("jones-reunion", 500, text="upstream exploded")
    await seed_gallery("jones-reunion", name="Jones Reunion", status="ARCHIVED")

    r = await api.get("/api/gallery/jones-reunion")

    assert r.status_code == 200
    assert r.json()["status"] == "ARCHIVED"
    assert r.json()["photos"] == []


@pytest.mark.asyncio
async def test_unknown_gallery_is_404(api, upstream):
    r = await api.get("/api/gallery/nobody")

    assert r.status_code == 404
    assert r.json() == {"error": "Client not found"}


@pytest.mark.asyncio
async def test_download_local_gallery_when_studio_errors(api, upstream, seed_gallery):
    upstream.studio("jones-reunion", 500)
    upstream.add(f"{CDN}/v1/jr/a.jpg", content=b"aaa")
    upstream.add(f"{CDN}/jr/b.jpg", content=b"bbb")  # reached after stale-version retry
    upstream.add(f"{CDN}/jr/c.jpg", 403)
    await seed_gallery(
        "jones-reunion",
        name="Jones Reunion",
        photos=[
            {"url": f"{CDN}/v1/jr/a.jpg", "filename": "a.jpg"},
            {"url": f"{CDN}/v2/jr/b.jpg", "public_id": "jr/b"},
            {"url": f"{CDN}/jr/c.jpg"},
        ],
    )

    r = await api.get("/api/gallery/jones-reunion/download")

    assert r.status_code == 200
    assert r.headers["content-type"] == "application/zip"
    assert r.headers["content-disposition"] == 'attachment; filename="Jones_Reunion_Gallery.zip"'
    archive = zipfile.ZipFile(io.BytesIO(r.content))
    # newest first; c.jpg is refused by the asset host
    assert archive.namelist() == ["b.jpg", "a.jpg"]
    assert archive.read("a.jpg") == b"aaa"


@pytest.mark.asyncio
async def test_download_counts_only_photos_with_urls(api, upstream, seed_gallery):
    upstream.add(f"{CDN}/one.jpg", content=b"1")
    upstream.add(f"{CDN}/two.jpg", content=b"2")
    await seed_gallery(
        "mixed",
        photos=[
            {"url": f"{CDN}/one.jpg"},
            {"url": None, "filename": "lost.jpg"},
            {"url": f"{CDN}/two.jpg"},
        ],
    )

    r = await api.get("/api/gallery/mixed/download")

    assert r.status_code == 200
    assert sorted(zipfile.ZipFile(io.BytesIO(r.content)).namelist()) == ["one.jpg", "two.jpg"]


@pytest.mark.asyncio
async def test_download_empty_gallery_is_400(api, upstream, seed_gallery):
    await seed_gallery("empty-event", name="Empty Event")

    r = await api.get("/api/gallery/empty-event/download")

    assert r.status_code == 400
    assert r.json() == {"error": "No photos to download"}
    assert r.headers["content-type"].startswith("application/json")


@pytest.mark.asyncio
async def test_download_gallery_without_photo_urls_is_400(api, upstream, seed_gallery):
    await seed_gallery("no-urls", photos=[{"url": None, "filename": "lost.jpg"}, {"url": ""}])

    r = await api.get("/api/gallery/no-urls/download")

    assert r.status_code == 400
    assert r.json() == {"error": "No photos to download"}
    assert upstream.urls() == ["http://studio.test/api/internal/legacy/gallery/no-urls"]


@pytest.mark.asyncio
async def test_download_unknown_gallery_is_404(api, upstream):
    r = await api.get("/api/gallery/ghost/download")

    assert r.status_code == 404
    assert r.json() == {"error": "Gallery not found"}


@pytest.mark.asyncio
async def test_download_uses_studio_photos(api, upstream, db_engine):
    upstream.studio(
        "smith-wedding",
        json={
            "id": "7f1c",
            "name": "Smith Wedding",
            "photos": [
                {"id": "p1", "url": f"{CDN}/smith/first-dance.jpg", "filename": " "},
                {"id": "p2", "url": f"{CDN}/smith/toast.jpg", "filename": "Toast.jpg"},
            ],
        },
    )
    upstream.add(f"{CDN}/smith/first-dance.jpg", content=b"dance")
    upstream.add(f"{CDN}/smith/toast.jpg", content=b"toast")
    statements = count_queries(db_engine)

    r = await api.get("/api/gallery/smith-wedding/download")

    assert r.status_code == 200
    assert r.headers["content-disposition"] == 'attachment; filename="Smith_Wedding_Gallery.zip"'
    assert zipfile.ZipFile(io.BytesIO(r.content)).namelist() == ["first-dance.jpg", "Toast.jpg"]
    assert statements == []


@pytest.mark.asyncio
async def test_download_studio_gallery_without_photos_is_400(api, upstream):
    upstream.studio("bare", json={"id": "b1", "name": "Bare"})

    r = await api.get("/api/gallery/bare/download")

    assert r.status_code == 400
    assert r.json() == {"error": "No photos to download"}


@pytest.mark.asyncio
async def test_malformed_studio_gallery_falls_back_for_download(api, upstream, seed_gallery):
    upstream.studio("patchy", json={"photos": "nope"})
    upstream.add(f"{CDN}/p.jpg", content=b"p")
    await seed_gallery("patchy", name="Patchy", photos=[{"url": f"{CDN}/p.jpg"}])

    r = await api.get("/api/gallery/patchy/download")

    assert r.status_code == 200
    assert zipfile.ZipFile(io.BytesIO(r.content)).namelist() == ["p.jpg"]
