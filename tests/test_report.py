import pytest

from camera_metadata.metadata import report
from camera_metadata.metadata.report import parse_report


def test_sample_report_fields(sample_report):
    record = parse_report(sample_report)

    assert report.video_dimensions(record) == "1920x1080"
    assert report.video_date(record) == "Jan 1, 2023\n12:00"
    assert report.video_duration(record) == "Duration: | + Duration: 00:00:05.000000000"
    assert report.multiplexing_application(record) == "libebml v1.4.2 + libmatroska v1.6.4"
    assert report.writing_application(record) == "Writing application: mkvmerge v70.0.0 64-bit"
    assert report.document_type(record) == "File Type: webm"
    assert report.codec_id(record) == "Codec ID: V_VP8"


def test_empty_report_gives_exact_defaults():
    record = parse_report("")

    assert report.video_date(record) == "Date not found."
    assert report.video_dimensions(record) == "Dimensions not found."
    assert report.video_duration(record) == "Duration not found."
    assert report.multiplexing_application(record) == "Multiplexing Application: Not found"
    assert report.writing_application(record) == ""
    assert report.document_type(record) == "File Type: Not found"
    assert report.codec_id(record) == "Codec ID: Not found"


def test_unrelated_lines_give_defaults():
    record = parse_report("+ EBML head\n|+ EBML version: 1\n|+ Cluster\n")

    assert not record
    for name, field in report.VIDEO_FIELDS.items():
        assert report.video_field(record, name) == field.default


def test_first_codec_id_wins():
    text = "|  + Codec ID: V_MPEG4/ISO/AVC\n|  + Codec ID: A_AAC\n"
    assert report.codec_id(parse_report(text)) == "Codec ID: V_MPEG4/ISO/AVC"


def test_first_pixel_width_wins():
    text = "Pixel width: 640\nPixel height: 480\nPixel width: 1920\nPixel height: 1080\n"
    assert report.video_dimensions(parse_report(text)) == "640x480"


@pytest.mark.parametrize("text", [
    "Pixel width: 1920\n",
    "Pixel height: 1080\n",
    "Pixel width:\nPixel height: 1080\n",
])
def test_dimensions_need_both_values(text):
    assert report.video_dimensions(parse_report(text)) == "Dimensions not found."


@pytest.mark.parametrize("line", [
    "| + Date: 2023-01-01 12:00:00",
    "| + Date: 01/01/2023 12:00 UTC",
    "| + Date: 2023-02-30 12:00:00 UTC",
    "| + Date:",
])
def test_unparsable_date(line):
    assert report.video_date(parse_report(line)) == "Date not found."


def test_first_date_line_decides():
    text = "| + Date: garbage\n| + Date: 2023-01-01 12:00:00 UTC\n"
    assert report.video_date(parse_report(text)) == "Date not found."


def test_older_muxing_label():
    record = parse_report("| + Muxing application: libebml v1.3.0 + libmatroska v1.4.1\n")
    assert report.multiplexing_application(record) == "libebml v1.3.0 + libmatroska v1.4.1"


def test_value_keeps_text_after_first_colon():
    record = parse_report("|  + Track number: 1 (track ID for mkvmerge & mkvextract: 0)\n")
    assert record.value("Track number") == "1 (track ID for mkvmerge & mkvextract: 0)"


def test_repeated_labels_are_all_kept(sample_report):
    record = parse_report(sample_report)
    assert record.all("Codec ID") == ["|  + Codec ID: V_VP8", "|  + Codec ID: A_OPUS"]


def test_tracks(sample_report):
    result = report.tracks(parse_report(sample_report))

    assert result == [
        {"number": "1", "track_type": "video", "codec_id": "V_VP8",
         "pixel_width": "1920", "pixel_height": "1080"},
        {"number": "2", "track_type": "audio", "codec_id": "A_OPUS",
         "sampling_frequency": "48000", "channels": "2"},
    ]


def test_describe_video(sample_report):
    result = report.describe_video(parse_report(sample_report))

    assert list(result) == list(report.VIDEO_FIELDS)
    assert result["title"] == "Holiday"


def test_table_labels_drive_lookup(monkeypatch):
    record = parse_report("| + Writing application: mkvmerge\n| + Title: Holiday\n")
    field_def = report.VIDEO_FIELDS["writing_application"]
    monkeypatch.setitem(report.VIDEO_FIELDS, "writing_application",
                        report.VideoField(("Title",), field_def.render, field_def.default))

    assert report.writing_application(record) == "Writing application: Holiday"

