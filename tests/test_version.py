import re


def test_package_exposes_version():
    import tailstream

    assert re.match(r"\d+\.\d+\.\d+", tailstream.__version__)
    assert "TailStream" in tailstream.__all__
