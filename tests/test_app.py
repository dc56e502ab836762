"""Tests for the Flask front end."""

import pytest

from areamap.app import create_app
from areamap.config import Settings
from areamap.pipeline import ChoroplethMapper

LAYERS = [("Quintile", "Quintile"), ("Decile", "Decile")]


@pytest.fixture
def client(joined):
    mapper = ChoroplethMapper(Settings(tiles="OpenStreetMap"))
    mapper.joined = joined
    app = create_app(mapper, LAYERS)
    app.config["TESTING"] = True
    return app.test_client()


def test_index_serves_interactive_map(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.mimetype == "text/html"
    assert b"Decile" in response.data


def test_index_with_selected_layer(client):
    assert client.get("/?layer=Decile").status_code == 200


def test_index_unknown_layer(client):
    response = client.get("/?layer=Vigintile")

    assert response.status_code == 404
    assert response.get_json()["available"] == ["Quintile", "Decile"]


def test_static_png(client):
    response = client.get("/static.png?column=Decile")

    assert response.status_code == 200
    assert response.data[:4] == b"\x89PNG"


def test_static_unknown_column(client):
    assert client.get("/static.png?column=Vigintile").status_code == 404


def test_static_unsupported_format(client):
    assert client.get("/static.gif").status_code == 400


def test_regions_summary(client):
    payload = client.get("/api/regions").get_json()

    assert payload["id_column"] == "DataZone"
    assert payload["count"] == 5
    assert payload["regions"][0] == {"DataZone": "A", "Quintile": 1, "Decile": 1}


def test_layers_default_to_joined_measurements(joined):
    mapper = ChoroplethMapper(Settings(tiles="OpenStreetMap"))
    mapper.joined = joined
    client = create_app(mapper).test_client()

    response = client.get("/?layer=Vigintile")

    assert response.get_json()["available"] == ["Quintile", "Decile"]


def test_render_error_is_json(joined):
    mapper = ChoroplethMapper(Settings(tiles="OpenStreetMap"))
    mapper.joined = joined
    client = create_app(mapper, [("Vigintile", "Vigintile")]).test_client()

    response = client.get("/")

    assert response.status_code == 500
    assert response.is_json
    assert "Vigintile" in response.get_json()["error"]


def test_requires_joined_mapper():
    with pytest.raises(ValueError, match="join"):
        create_app(ChoroplethMapper(), LAYERS)
