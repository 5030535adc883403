"""
Test script for the background extraction worker

Calls run() directly so the signals fire synchronously on the test thread.

Usage:
    python -m pytest tests/test_extraction_worker.py
"""

import sys
from pathlib import Path

import pytest
from PyQt5.QtCore import QCoreApplication

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.character import CharacterRecord
from src.extraction_worker import ExtractionWorker
from src.extractor import FieldExtractor
from src.ocr import DigitRecognizer
from src.reference import ReferenceMatcher, load_reference_data

from synthetic import FailingAcquireOCR, FakeOCR, make_templates, screenshot


@pytest.fixture(scope="module")
def app():
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture(scope="module")
def reference():
    return load_reference_data()


def make_worker(reference, engine, **kwargs):
    extractor = FieldExtractor(engine, ReferenceMatcher(reference), DigitRecognizer(make_templates()), max_workers=2)
    return ExtractionWorker(extractor, reference, screenshot(), "overworld", **kwargs)


def test_worker_emits_records(app, reference):
    worker = make_worker(reference, FakeOCR(), prior_right=CharacterRecord(sp=3))
    records = []
    progress = []
    worker.records_ready.connect(lambda left, right, result: records.append((left, right, result)))
    worker.progress_changed.connect(lambda percent, message: progress.append(percent))

    worker.run()

    assert len(records) == 1
    left, right, result = records[0]
    assert left.job == "Warrior"
    assert (left.hp_current, left.hp_max) == (62, 140)
    assert right.sp == 3
    assert right.needs_review
    assert worker.result is result
    assert progress and progress[-1] == pytest.approx(1.0)


def test_worker_reports_cancel(app, reference):
    worker = make_worker(reference, FakeOCR())
    cancelled = []
    records = []
    worker.cancelled.connect(lambda: cancelled.append(True))
    worker.records_ready.connect(lambda *args: records.append(args))

    worker.request_cancel()
    worker.run()

    assert cancelled == [True]
    assert records == []


def test_worker_reports_engine_failure(app, reference):
    worker = make_worker(reference, FailingAcquireOCR())
    errors = []
    worker.error_occurred.connect(errors.append)

    worker.run()

    assert len(errors) == 1
    assert "binary not found" in errors[0]


def test_debug_image_needs_result(app, reference):
    worker = make_worker(reference, FakeOCR())
    assert worker.save_debug_image() is None


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))
