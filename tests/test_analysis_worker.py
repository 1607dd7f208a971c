"""Tests for workers.analysis_worker module."""

import threading

from PIL import Image

from conftest import StubClassifier, disc_mask, paint
from core.skin_analyzer import SkinAnalyzer
from workers.analysis_worker import AnalysisWorker


class TestAnalysisWorker:
    def test_results_in_input_order(self, tmp_dir, disc_image_path, melanoma_classifier):
        broken = tmp_dir / "broken.png"
        broken.write_bytes(b"garbage")
        paths = [disc_image_path, str(broken), disc_image_path]

        items = AnalysisWorker(SkinAnalyzer(classifier=melanoma_classifier)).run(paths)

        assert [item.input_path for item in items] == paths
        assert [item.success for item in items] == [True, False, True]
        assert items[0].result.risk.cancer_percentage == 90
        assert items[1].result is None
        assert items[1].error_message

    def test_shared_analyzer_classifies_each_file(self, disc_image_path, melanoma_classifier):
        worker = AnalysisWorker(SkinAnalyzer(classifier=melanoma_classifier), max_workers=3)
        items = worker.run([disc_image_path] * 4)
        assert all(item.success for item in items)
        assert melanoma_classifier.calls == 4

    def test_progress(self, disc_image_path, melanoma_classifier):
        seen = []
        lock = threading.Lock()

        def on_progress(done, total, path):
            with lock:
                seen.append((done, total))

        AnalysisWorker(SkinAnalyzer(classifier=melanoma_classifier)).run(
            [disc_image_path] * 3, on_progress=on_progress
        )
        assert sorted(seen) == [(1, 3), (2, 3), (3, 3)]

    def test_classifier_failure_reported(self, disc_image_path):
        worker = AnalysisWorker(SkinAnalyzer(classifier=StubClassifier([])))
        items = worker.run([disc_image_path])
        assert items[0].success is False
        assert "no predictions" in items[0].error_message

    def test_cancel_before_run(self, disc_image_path, melanoma_classifier):
        worker = AnalysisWorker(SkinAnalyzer(classifier=melanoma_classifier))
        worker.cancel()
        items = worker.run([disc_image_path] * 2)
        assert worker.is_cancelled()
        assert all(not item.success for item in items)
        assert items[0].error_message == "Analysis cancelled."
        assert melanoma_classifier.calls == 0

    def test_external_cancel_check(self, disc_image_path, melanoma_classifier):
        worker = AnalysisWorker(SkinAnalyzer(classifier=melanoma_classifier))
        items = worker.run([disc_image_path], is_cancelled=lambda: True)
        assert items[0].success is False

    def test_empty_batch(self, melanoma_classifier):
        assert AnalysisWorker(SkinAnalyzer(classifier=melanoma_classifier)).run([]) == []

    def test_refused_image_does_not_abort_batch(self, monkeypatch, tmp_dir, disc_image_path,
                                                melanoma_classifier):
        small = tmp_dir / "small.png"
        Image.fromarray(paint(disc_mask(8, 3))).save(small)
        # the 101x101 disc is far above this pixel limit, the 8x8 image is not
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

        items = AnalysisWorker(SkinAnalyzer(classifier=melanoma_classifier)).run(
            [str(small), disc_image_path]
        )

        assert [item.success for item in items] == [True, False]
        assert items[1].error_message
