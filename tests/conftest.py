import json

import pytest
import requests

from epic_sync.config import Settings


RECORD = {
    "identifier": "20151031221308",
    "caption": "This image was taken by NASA's EPIC camera onboard the NOAA DSCOVR spacecraft",
    "image": "epic_1b_20151031221308",
    "version": "02",
    "centroid_coordinates": {"lat": -5.36902, "lon": -164.487468},
    "dscovr_j2000_position": {"x": -1268623.557569, "y": -690889.141203, "z": -136798.451041},
    "lunar_j2000_position": {"x": -47188.349357, "y": 358516.852648, "z": 118163.91538},
    "sun_j2000_position": {"x": -117110114.80008, "y": -83785061.649627, "z": -36321513.174041},
    "attitude_quaternions": {"q0": -0.302, "q1": -0.123, "q2": 0.21848, "q3": 0.91975},
    "date": "2015-10-31 22:08:19",
    "coords": {
        "centroid_coordinates": {"lat": -5.36902, "lon": -164.487468},
        "dscovr_j2000_position": {"x": -1268623.557569, "y": -690889.141203, "z": -136798.451041},
        "lunar_j2000_position": {"x": -47188.349357, "y": 358516.852648, "z": 118163.91538},
        "sun_j2000_position": {"x": -117110114.80008, "y": -83785061.649627, "z": -36321513.174041},
        "attitude_quaternions": {"q0": -0.302, "q1": -0.123, "q2": 0.21848, "q3": 0.91975},
    },
}


def make_record(image: str, date: str) -> dict:
    data = json.loads(json.dumps(RECORD))
    data["image"] = image
    data["identifier"] = image.rsplit("_", 1)[-1]
    data["date"] = date
    return data


class FakeResponse:
    def __init__(self, body=b"", status_code=200, fail_after=None):
        if isinstance(body, str):
            body = body.encode()
        self.content = body
        self.status_code = status_code
        self.fail_after = fail_after
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            if self.fail_after is not None and i >= self.fail_after:
                raise requests.ConnectionError("connection reset")
            yield self.content[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Serves canned responses keyed by URL; unknown URLs get a 404."""

    def __init__(self, routes=None):
        self.routes = routes if routes is not None else {}
        self.calls = []

    def get(self, url, params=None, timeout=None, stream=False):
        self.calls.append({"url": url, "params": params, "timeout": timeout, "stream": stream})
        route = self.routes.get(url, FakeResponse(b"not found", status_code=404))
        if isinstance(route, Exception):
            raise route
        return route

    def close(self):
        pass


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_key="TESTKEY",
        catalog_url="https://catalog.test/EPIC",
        mirror_url="http://mirror.test",
        output_dir=tmp_path / "out",
    )


@pytest.fixture
def session():
    return FakeSession()
