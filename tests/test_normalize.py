from clearmark.trademark.normalize import dedup_key, normalize, strip_accents


class TestNormalize:
    def test_strips_accents(self):
        assert strip_accents("MERÉA") == "MEREA"
        assert strip_accents("Crème Brûlée") == "Creme Brulee"

    def test_lowercases_and_collapses_whitespace(self):
        assert normalize("  Le   Petit\tCafé  ") == "le petit cafe"

    def test_empty_input(self):
        assert normalize("") == ""
        assert normalize(None) == ""

    def test_idempotent(self):
        once = normalize("  ÉCLAIR  Noir ")
        assert normalize(once) == once


class TestDedupKey:
    def test_accent_and_case_insensitive(self):
        assert dedup_key("MERÉA", [9]) == dedup_key("merea", [9]) == "merea|9"

    def test_classes_sorted_and_deduplicated(self):
        assert dedup_key("Nexus", [42, 9, 9, 35]) == "nexus|9-35-42"

    def test_different_classes_give_different_keys(self):
        assert dedup_key("Nexus", [9]) != dedup_key("Nexus", [35])
