from datetime import datetime

from conftest import FakeFile, FakeFolder, make_record
from pmo_saver.errors import ExternalServiceError
from pmo_saver.folder_writer import write_attachments
from pmo_saver.models import Failed, Saved, SkippedDuplicate

STAMP = datetime(2024, 3, 5, 14, 7, 9)


def test_new_files_are_saved_under_original_names():
    folder = FakeFolder()

    result = write_attachments(folder, [make_record("a.pdf", 10, 0), make_record("b.txt", 3, 1)], STAMP)

    assert result.outcomes == [Saved("a.pdf"), Saved("b.txt")]
    assert result.saved_count == 2
    assert result.skipped_count == 0
    assert [item.name for item in folder.files] == ["a.pdf", "b.txt"]


def test_same_name_same_size_is_skipped():
    folder = FakeFolder(files=[FakeFile("report.pdf", 100)])

    result = write_attachments(
        folder, [make_record("report.pdf", 100, 0), make_record("report.pdf", 100, 1)], STAMP
    )

    assert result.skipped_count == 2
    assert result.skipped_names == ["report.pdf", "report.pdf"]
    assert len(folder.files) == 1


def test_duplicate_within_one_save_is_skipped_after_first_write():
    folder = FakeFolder()

    result = write_attachments(
        folder, [make_record("report.pdf", 100, 0), make_record("report.pdf", 100, 1)], STAMP
    )

    assert result.saved_count == 1
    assert result.skipped_count == 1


def test_same_name_different_size_gets_timestamp_suffix():
    folder = FakeFolder(files=[FakeFile("report.final.pdf", 100)])

    result = write_attachments(folder, [make_record("report.final.pdf", 250, 0)], STAMP)

    assert result.outcomes == [Saved("report.final_20240305_140709.pdf")]
    assert result.saved_count == 1
    assert sorted(item.name for item in folder.files) == [
        "report.final.pdf",
        "report.final_20240305_140709.pdf",
    ]


def test_suffix_without_extension():
    folder = FakeFolder(files=[FakeFile("README", 1)])

    result = write_attachments(folder, [make_record("README", 2, 0)], STAMP)

    assert result.saved_names == ["README_20240305_140709"]


def test_failed_upload_does_not_stop_the_rest():
    folder = FakeFolder(fail_on={"broken.bin"})
    records = [make_record("broken.bin", 5, 0), make_record("fine.txt", 5, 1)]

    result = write_attachments(folder, records, STAMP)

    assert result.outcomes == [Failed("broken.bin", "upload of broken.bin refused"), Saved("fine.txt")]
    assert result.saved_count + result.skipped_count < len(records)
    assert result.failed_names == ["broken.bin"]


def test_renamed_file_is_uploaded_under_its_final_name_only():
    folder = FakeFolder(files=[FakeFile("a.pdf", 1)])

    result = write_attachments(folder, [make_record("a.pdf", 2, 0)], STAMP)

    assert result.outcomes == [Saved("a_20240305_140709.pdf")]
    assert [(item.name, item.size) for item in folder.files] == [("a.pdf", 1), ("a_20240305_140709.pdf", 2)]


def test_content_is_loaded_per_attachment():
    folder = FakeFolder(files=[FakeFile("dup.txt", 4)])
    loaded = []

    def _load(record):
        loaded.append(record.name)
        return record

    records = [make_record("dup.txt", 4, 0), make_record("new.txt", 1, 1)]
    result = write_attachments(folder, records, STAMP, load_content=_load)

    assert result.outcomes == [SkippedDuplicate("dup.txt"), Saved("new.txt")]
    assert loaded == ["new.txt"]


def test_failed_download_does_not_stop_the_rest():
    folder = FakeFolder()

    def _load(record):
        if record.name == "gone.pdf":
            raise ExternalServiceError("attachment expired")
        return record

    records = [make_record("gone.pdf", 3, 0), make_record("kept.pdf", 3, 1)]
    result = write_attachments(folder, records, STAMP, load_content=_load)

    assert result.outcomes == [Failed("gone.pdf", "attachment expired"), Saved("kept.pdf")]
    assert [item.name for item in folder.files] == ["kept.pdf"]


def test_counts_never_exceed_input():
    folder = FakeFolder(files=[FakeFile("dup.txt", 4)], fail_on={"bad.txt"})
    records = [make_record("dup.txt", 4, 0), make_record("bad.txt", 1, 1), make_record("new.txt", 1, 2)]

    result = write_attachments(folder, records, STAMP)

    assert result.saved_count + result.skipped_count <= len(records)
    assert result.outcomes[0] == SkippedDuplicate("dup.txt")
