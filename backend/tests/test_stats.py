"""Counter behaviour, including concurrent calls on one instance."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from sentinel.input_sanitizer import InputSanitizer
from sentinel.output_filter import OutputFilter
from sentinel.stats import CallCounter, StatsSnapshot


class TestCallCounter:

    def test_starts_at_zero(self):
        assert CallCounter().snapshot() == StatsSnapshot(processed=0, transformed=0)

    def test_record(self):
        counter = CallCounter()
        counter.record(transformed=True)
        counter.record(transformed=False)
        assert counter.snapshot() == StatsSnapshot(processed=2, transformed=1)

    def test_snapshot_is_a_copy(self):
        counter = CallCounter()
        before = counter.snapshot()
        counter.record(transformed=True)
        assert before.processed == 0


class TestComponentCounters:

    def test_sanitized_matches_changed_calls(self, sanitizer: InputSanitizer):
        inputs = ["plain", "<script>x</script>hi", None, "jailbreak", "[INST] go"]
        results = [sanitizer.sanitize(text) for text in inputs]
        stats = sanitizer.get_stats()
        assert stats.processed == len(inputs)
        assert stats.transformed == sum(r.changed for r in results) == 2

    def test_instances_are_independent(self):
        first, second = InputSanitizer(), InputSanitizer()
        first.sanitize("<script></script>")
        assert second.get_stats().processed == 0


class TestConcurrency:

    def test_concurrent_sanitize(self, sanitizer: InputSanitizer):
        texts = ["<script>a</script>b", "clean"] * 500
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(sanitizer.sanitize, texts))
        stats = sanitizer.get_stats()
        assert stats.processed == 1000
        assert stats.transformed == 500

    def test_concurrent_filter(self, output_filter: OutputFilter):
        texts = ["SSN 123-45-6789", "nothing"] * 500
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(output_filter.filter_output, texts))
        stats = output_filter.get_stats()
        assert stats.processed == 1000
        assert stats.transformed == 500
