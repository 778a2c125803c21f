import io
import json

import pytest

from sniffer.models.exceptions import OutputException
from sniffer.models.resource import MediaResource, MediaType
from sniffer.utils.output_formatter import OutputFormatter, ResultSerializer, format_size


@pytest.fixture
def resources():
    return [
        MediaResource(url="https://x/v.mp4", type=MediaType.VIDEO, size=2048, width=640, height=360,
                      discovered_by="VideoTag"),
        MediaResource(url="https://x/a.jpg", type=MediaType.IMAGE, alt="a\tb", discovered_by="ImageTag"),
    ]


def test_tsv_output(resources):
    out = io.StringIO()
    ResultSerializer().serialize_to_file(resources, out, "tsv")
    lines = out.getvalue().splitlines()

    assert lines[0] == "type\tsize\tdimensions\turl\talt\tstrategy"
    assert lines[1] == "video\t2048\t640x360\thttps://x/v.mp4\t-\tVideoTag"
    assert lines[2] == "image\t0\t0x0\thttps://x/a.jpg\ta\\tb\tImageTag"


def test_json_output_is_one_document(resources):
    out = io.StringIO()
    ResultSerializer().serialize_to_file(resources, out, "json")

    data = json.loads(out.getvalue())
    assert [d["url"] for d in data] == ["https://x/v.mp4", "https://x/a.jpg"]
    assert "size" not in data[1]


def test_jsonl_and_csv(resources):
    fmt = OutputFormatter()

    assert json.loads(fmt.format_resource(resources[0], "jsonl"))["type"] == "video"
    assert fmt.format_resource(resources[0], "csv") == "video,2048,640,360,https://x/v.mp4,,VideoTag"
    assert fmt.get_header("csv").startswith("type,size")
    assert fmt.get_header("jsonl") == ""


def test_unsupported_format(resources):
    with pytest.raises(OutputException):
        OutputFormatter().format_resource(resources[0], "xml")


def test_type_filter(resources):
    s = ResultSerializer()

    assert [r.type for r in s.filter_resources(resources, ["IMAGE"])] == [MediaType.IMAGE]
    assert s.filter_resources(resources, None) == resources


def test_summary(resources):
    text = ResultSerializer().create_summary("https://example.com/", resources, 1.5)

    assert "Resources: 2" in text
    assert "video: 1" in text
    assert "audio" not in text
    assert "Known size: 2.0 KB" in text


@pytest.mark.parametrize("value,expected", [
    (None, "-"),
    (0, "-"),
    (512, "512 B"),
    (204800, "200.0 KB"),
    (5 * 1024 * 1024, "5.0 MB"),
    (3 * 1024 ** 4, "3072.0 GB"),
])
def test_format_size(value, expected):
    assert format_size(value) == expected
