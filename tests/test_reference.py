import pytest

from dockreg.reference import parse_image_name

DIGEST = "sha256:3d2e482b82608d153a374df3357c0291589a61cc194ec4a9ca2381073a17f58e"


@pytest.mark.parametrize(
    "name,expected",
    [
        ("127.0.0.1:6363/e2e:test", ("127.0.0.1:6363", "e2e", "test", "")),
        (f"127.0.0.1:6363/e2e@{DIGEST}", ("127.0.0.1:6363", "e2e", "", DIGEST)),
        ("golang:1.12.0", ("docker.io", "library/golang", "1.12.0", "")),
        ("golang", ("docker.io", "library/golang", "", "")),
        ("bitnami/redis:7.2", ("docker.io", "bitnami/redis", "7.2", "")),
        ("index.docker.io/library/golang", ("docker.io", "library/golang", "", "")),
        ("localhost/team/app:v1", ("localhost", "team/app", "v1", "")),
        ("quay.io/team/app:v1@" + DIGEST, ("quay.io", "team/app", "v1", DIGEST)),
    ],
)
def test_parse_image_name(name, expected):
    assert parse_image_name(name) == expected


@pytest.mark.parametrize(
    "name",
    [
        "",
        " golang",
        "Golang:1.12",
        "golang:",
        "golang@sha256:short",
        "quay.io/",
        "golang:tag/with/slash",
    ],
)
def test_parse_image_name_invalid(name):
    with pytest.raises(ValueError):
        parse_image_name(name)
