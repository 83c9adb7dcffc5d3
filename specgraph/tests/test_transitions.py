"""Tests for extracting step references from free text."""

from specgraph.importer.patterns import ScenarioPatterns
from specgraph.importer.transitions import TransitionCandidate, extract_transitions


class TestExtractTransitions:
    """Step references ("переход к шагу N") found in prose."""

    def test_no_text(self):
        assert extract_transitions(None) == []
        assert extract_transitions("") == []
        assert extract_transitions("Пользователь вводит сумму") == []

    def test_single_reference_with_label(self):
        result = extract_transitions("Если карта активна, переход к шагу 3")
        assert result == [TransitionCandidate(target_key="3", label="Если карта активна")]

    def test_reference_without_preceding_text(self):
        assert extract_transitions("Переход к шагу 12.") == [
            TransitionCandidate(target_key="12", label="")
        ]

    def test_case_insensitive_and_genitive_form(self):
        result = extract_transitions("Отказ: ПЕРЕХОД К ШАГА 5")
        assert result == [TransitionCandidate(target_key="5", label="Отказ")]

    def test_all_references_in_order(self):
        result = extract_transitions("Если да, переход к шагу 4; если нет, переход к шагу 9")
        assert [c.target_key for c in result] == ["4", "9"]
        assert result[0].label == "Если да"
        assert result[1].label.endswith("если нет")

    def test_duplicates_are_kept(self):
        result = extract_transitions("переход к шагу 2, иначе переход к шагу 2")
        assert [c.target_key for c in result] == ["2", "2"]

    def test_trailing_punctuation_stripped_from_label(self):
        result = extract_transitions("Ошибка оплаты -  ;: переход к шагу 7")
        assert result[0].label == "Ошибка оплаты"

    def test_long_label_is_truncated_with_ellipsis(self):
        text = "а" * 100 + " переход к шагу 2"
        label = extract_transitions(text)[0].label
        assert label == "…" + "а" * 60
        assert len(label) == 61

    def test_short_label_kept_whole(self):
        text = "Начало. " + "б" * 40 + " переход к шагу 2"
        label = extract_transitions(text)[0].label
        assert label == "Начало. " + "б" * 40

    def test_english_phrase(self):
        result = extract_transitions("On card decline, transition to step 4.")
        assert result == [TransitionCandidate(target_key="4", label="On card decline")]

    def test_requires_step_number(self):
        assert extract_transitions("переход к шагу оплаты") == []


class TestCustomPatterns:
    """Phrases come from the pattern table."""

    def test_alternate_phrase(self):
        patterns = ScenarioPatterns(transition_phrases=(r"перейти к шагу", r"goto"))
        result = extract_transitions("Успех - перейти к шагу 6, fail goto 8", patterns)
        assert [c.target_key for c in result] == ["6", "8"]
        # default phrase is no longer recognized
        assert extract_transitions("переход к шагу 3", patterns) == []

    def test_label_limits(self):
        patterns = ScenarioPatterns(label_max_chars=5, ellipsis="...")
        result = extract_transitions("Карта заблокирована, переход к шагу 3", patterns)
        assert result[0].label == "...ована"
