import json

import pytest

from conftest import FakeResponse, FakeSession, make_record
from epic_sync import sync
from epic_sync.errors import ParseError, ResizeError, TimeParseError, TransportError
from epic_sync.nasa_api import EpicClient

CATALOG = "https://catalog.test/EPIC"


def dates_body(*dates):
    return FakeResponse(json.dumps([{"date": d} for d in dates]))


def archive_url(date, name):
    y, m, d = date.split("-")
    return f"{CATALOG}/archive/natural/{y}/{m}/{d}/png/{name}.png?api_key=TESTKEY"


def add_date(routes, date, names):
    records = [make_record(n, f"{date} 00:{i:02d}:00") for i, n in enumerate(names)]
    routes[f"{CATALOG}/api/natural/date/{date}"] = FakeResponse(json.dumps(records))
    for n in names:
        routes[archive_url(date, n)] = FakeResponse(f"png {n}")


@pytest.fixture
def routes():
    return {}


@pytest.fixture
def client(settings, routes):
    return EpicClient(settings, session=FakeSession(routes))


def test_only_missing_date_is_processed(client, settings, routes):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20", "2018-09-19")
    routes["http://mirror.test/all.json"] = dates_body("2018-09-20")
    add_date(routes, "2018-09-19", ["epic_1b_20180919000000", "epic_1b_20180919010000"])

    report = sync.run_sync(client, settings)

    assert report.missing == ["2018-09-19"]
    assert [d.date for d in report.dates] == ["2018-09-19"]
    assert report.ok
    assert (settings.output_dir / "epic_1b_20180919000000.png").read_text() == "png epic_1b_20180919000000"
    assert (settings.output_dir / "epic_1b_20180919010000.png").exists()
    fetched = [c["url"] for c in client.session.calls]
    assert f"{CATALOG}/api/natural/date/2018-09-20" not in fetched


def test_up_to_date_mirror_does_nothing(client, settings, routes):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body("2018-09-20")

    report = sync.run_sync(client, settings)

    assert report.missing == []
    assert report.dates == []
    assert report.ok


@pytest.mark.parametrize("workers", [1, 3])
def test_limit_bounds_processed_dates(client, settings, routes, workers):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-22", "2018-09-21", "2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    for date in ("2018-09-22", "2018-09-21", "2018-09-20"):
        add_date(routes, date, [f"img_{date}"])

    report = sync.run_sync(client, settings, limit=2, workers=workers)

    assert report.missing == ["2018-09-22", "2018-09-21", "2018-09-20"]
    assert [d.date for d in report.dates] == ["2018-09-22", "2018-09-21"]
    assert not (settings.output_dir / "img_2018-09-20.png").exists()


def test_failed_manifest_does_not_stop_run(client, settings, routes):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-21", "2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    routes[f"{CATALOG}/api/natural/date/2018-09-21"] = FakeResponse("down", status_code=502)
    add_date(routes, "2018-09-20", ["img_a"])

    report = sync.run_sync(client, settings)

    assert isinstance(report.dates[0].error, TransportError)
    assert report.dates[1].ok
    assert (settings.output_dir / "img_a.png").exists()
    assert [label for label, _ in report.failures] == ["2018-09-21"]


def test_bad_timestamp_is_recorded_per_image(client, settings, routes):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    good = make_record("img_good", "2018-09-20 01:00:00")
    bad = make_record("img_bad", "20/09/2018")
    routes[f"{CATALOG}/api/natural/date/2018-09-20"] = FakeResponse(json.dumps([bad, good]))
    routes[archive_url("2018-09-20", "img_good")] = FakeResponse(b"ok")

    report = sync.run_sync(client, settings)

    images = report.dates[0].images
    assert [r.name for r in images] == ["img_bad", "img_good"]
    assert isinstance(images[0].error, TimeParseError)
    assert images[1].ok
    assert not report.ok


def test_unreachable_catalog_is_fatal(client, settings, routes):
    routes["http://mirror.test/all.json"] = dates_body()

    with pytest.raises(TransportError):
        sync.run_sync(client, settings)


def test_fail_fast_raises_first_error(client, settings, routes):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    routes[f"{CATALOG}/api/natural/date/2018-09-20"] = FakeResponse("[{}]")

    with pytest.raises(ParseError):
        sync.run_sync(client, settings, fail_fast=True)


def test_resize_makes_thumbnails(client, settings, routes, monkeypatch):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    add_date(routes, "2018-09-20", ["img_a", "img_b"])
    calls = []

    def fake_resize(original, size, name, output_dir=None):
        calls.append((original.name, size, name))
        if name == "img_b":
            raise ResizeError("ffmpeg failed")
        return output_dir / f"{name}_{size}x{size}.jpg"

    monkeypatch.setattr(sync, "resize_image", fake_resize)

    report = sync.run_sync(client, settings, resize=256)

    assert calls == [("img_a.png", 256, "img_a"), ("img_b.png", 256, "img_b")]
    a, b = report.dates[0].images
    assert a.thumbnail == settings.output_dir / "img_a_256x256.jpg"
    assert isinstance(b.error, ResizeError)


def test_invalid_record_does_not_sink_its_date(client, settings, routes):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    broken = make_record("img_broken", "2018-09-20 00:00:00")
    del broken["coords"]
    good = make_record("img_good", "2018-09-20 01:00:00")
    routes[f"{CATALOG}/api/natural/date/2018-09-20"] = FakeResponse(json.dumps([broken, good]))
    routes[archive_url("2018-09-20", "img_good")] = FakeResponse(b"ok")

    report = sync.run_sync(client, settings)

    date = report.dates[0]
    assert date.error is None
    assert [r.name for r in date.images] == ["img_broken", "img_good"]
    assert isinstance(date.images[0].error, ParseError)
    assert date.images[1].ok
    assert (settings.output_dir / "img_good.png").read_bytes() == b"ok"
    assert [label for label, _ in report.failures] == ["2018-09-20 img_broken"]


def test_invalid_record_with_fail_fast_raises(client, settings, routes):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    broken = make_record("img_broken", "2018-09-20 00:00:00")
    del broken["coords"]
    routes[f"{CATALOG}/api/natural/date/2018-09-20"] = FakeResponse(json.dumps([broken]))

    with pytest.raises(ParseError):
        sync.run_sync(client, settings, fail_fast=True)


def test_image_name_cannot_escape_output_dir(client, settings, routes, tmp_path):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    escaping = make_record("../escaped", "2018-09-20 00:00:00")
    good = make_record("img_good", "2018-09-20 01:00:00")
    routes[f"{CATALOG}/api/natural/date/2018-09-20"] = FakeResponse(json.dumps([escaping, good]))
    routes[f"{CATALOG}/archive/natural/2018/09/20/png/../escaped.png?api_key=TESTKEY"] = FakeResponse(b"x")
    routes[archive_url("2018-09-20", "img_good")] = FakeResponse(b"ok")

    report = sync.run_sync(client, settings)

    images = report.dates[0].images
    assert isinstance(images[0].error, ParseError)
    assert images[1].ok
    assert not (tmp_path / "escaped.png").exists()
    assert not (settings.output_dir.parent / "escaped.png").exists()


@pytest.mark.parametrize("kwargs", [{"limit": -1}, {"resize": -5}, {"resize": 0}])
def test_bad_arguments_rejected_before_any_request(client, settings, routes, kwargs):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    add_date(routes, "2018-09-20", ["img_a"])

    with pytest.raises(ValueError):
        sync.run_sync(client, settings, **kwargs)

    assert client.session.calls == []
    assert not (settings.output_dir / "img_a.png").exists()


def test_duplicate_entries_download_once(client, settings, routes):
    routes[f"{CATALOG}/api/natural/all"] = dates_body("2018-09-20")
    routes["http://mirror.test/all.json"] = dates_body()
    record = make_record("img_a", "2018-09-20 00:00:00")
    routes[f"{CATALOG}/api/natural/date/2018-09-20"] = FakeResponse(json.dumps([record, record]))
    routes[archive_url("2018-09-20", "img_a")] = FakeResponse(b"png")

    report = sync.run_sync(client, settings, workers=4)

    first, second = report.dates[0].images
    assert first.ok and not first.skipped
    assert second.skipped and second.path == first.path
    downloads = [c for c in client.session.calls if "/archive/" in c["url"]]
    assert len(downloads) == 1
