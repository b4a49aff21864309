"""Unit tests for edgy.rules.loader."""

from pathlib import Path

import pytest

from edgy.errors import RuleLoadError
from edgy.rules import load_knowledge, load_rules
from edgy.rules.loader import default_category, load_component_mappings, load_flow_rules

VALID_RULE = {
    "id": "r1",
    "name": "Rule one",
    "description": "A rule.",
    "triggers": {"any_of": [{"pattern_types": ["list"]}]},
    "recommendation": {"message": "Do it."},
}


class TestDefaultCategory:
    """Tests for default_category."""

    def test_from_document_name(self):
        """Test the document name is lower-cased and hyphenated."""
        assert default_category("Empty  States", Path("x.yml")) == "empty-states"

    def test_from_file_stem(self):
        """Test the file stem is used without a document name."""
        assert default_category(None, Path("rules/loading-states.yml")) == "loading-states"
        assert default_category("  ", Path("misc.yaml")) == "misc"


class TestLoadRules:
    """Tests for loading rule documents."""

    def test_category_from_document(self, write_corpus):
        """Test rules without a category inherit the document's."""
        root = write_corpus(rules={"a.yml": {"name": "Empty States", "rules": [VALID_RULE]}})
        rules = load_rules(root / "rules")

        assert [r.qualified_id for r in rules] == ["empty-states/r1"]

    def test_explicit_category_kept(self, write_corpus):
        """Test a declared category wins over the document name."""
        rule = dict(VALID_RULE, category="custom")
        root = write_corpus(rules={"a.yml": {"name": "Empty States", "rules": [rule]}})

        assert load_rules(root / "rules")[0].qualified_id == "custom/r1"

    def test_files_loaded_in_name_order(self, write_corpus):
        """Test documents load sorted by file name."""
        root = write_corpus(
            rules={
                "b.yml": {"rules": [dict(VALID_RULE, id="second")]},
                "a.yml": {"rules": [dict(VALID_RULE, id="first")]},
            }
        )
        assert [r.id for r in load_rules(root / "rules")] == ["first", "second"]

    def test_non_yaml_files_ignored(self, write_corpus):
        """Test only .yml and .yaml files are read."""
        root = write_corpus(rules={"a.yml": {"rules": [VALID_RULE]}})
        (root / "rules" / "README.md").write_text("# notes", encoding="utf-8")

        assert len(load_rules(root / "rules")) == 1

    def test_empty_document(self, write_corpus):
        """Test an empty file contributes no rules."""
        root = write_corpus(rules={"a.yml": {"rules": [VALID_RULE]}})
        (root / "rules" / "empty.yml").write_text("", encoding="utf-8")

        assert len(load_rules(root / "rules")) == 1

    def test_error_names_file_and_rule(self, write_corpus):
        """Test a schema error names the document and the rule id."""
        broken = dict(VALID_RULE, id="broken", severity="urgent")
        root = write_corpus(rules={"bad.yml": {"rules": [VALID_RULE, broken]}})

        with pytest.raises(RuleLoadError) as exc_info:
            load_rules(root / "rules")

        error = exc_info.value
        assert error.source.endswith("bad.yml")
        assert error.rule_id == "broken"
        assert "severity" in error.message
        assert error.exit_code == 1

    def test_unknown_key_fails_whole_load(self, write_corpus):
        """Test one unknown key aborts loading."""
        rule = dict(VALID_RULE, recomendation={"message": "typo"})
        root = write_corpus(rules={"a.yml": {"rules": [rule]}})

        with pytest.raises(RuleLoadError, match="recomendation"):
            load_knowledge(root)

    def test_invalid_yaml(self, write_corpus):
        """Test a YAML syntax error is reported with the file."""
        root = write_corpus(rules={})
        (root / "rules" / "bad.yml").write_text("rules: [unclosed", encoding="utf-8")

        with pytest.raises(RuleLoadError, match="invalid YAML"):
            load_rules(root / "rules")

    def test_document_must_be_mapping(self, write_corpus):
        """Test a top-level list is rejected."""
        root = write_corpus(rules={})
        (root / "rules" / "list.yml").write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(RuleLoadError, match="mapping"):
            load_rules(root / "rules")

    def test_duplicate_qualified_id(self, write_corpus):
        """Test the same category/id in two files is rejected."""
        root = write_corpus(
            rules={
                "a.yml": {"name": "Same", "rules": [VALID_RULE]},
                "b.yml": {"name": "Same", "rules": [VALID_RULE]},
            }
        )
        with pytest.raises(RuleLoadError, match="duplicate rule id") as exc_info:
            load_rules(root / "rules")
        assert exc_info.value.rule_id == "same/r1"

    def test_same_id_in_other_category(self, write_corpus):
        """Test ids only need to be unique within a category."""
        root = write_corpus(
            rules={
                "a.yml": {"name": "One", "rules": [VALID_RULE]},
                "b.yml": {"name": "Two", "rules": [VALID_RULE]},
            }
        )
        assert [r.qualified_id for r in load_rules(root / "rules")] == ["one/r1", "two/r1"]

    def test_missing_rules_directory(self, tmp_path):
        """Test a missing rules directory is fatal."""
        with pytest.raises(RuleLoadError, match="rules directory not found"):
            load_rules(tmp_path / "nope")


class TestLoadFlowsAndMappings:
    """Tests for flow rule and mapping loading."""

    def test_missing_flows_directory(self, tmp_path):
        """Test a missing flows directory yields no flow rules."""
        assert load_flow_rules(tmp_path / "flows") == []

    def test_duplicate_flow_type(self, write_corpus):
        """Test two documents with one flow type are rejected."""
        flow = {"flow_type": "auth", "name": "Auth"}
        root = write_corpus(flows={"a.yml": flow, "b.yml": flow})

        with pytest.raises(RuleLoadError, match="duplicate flow type"):
            load_flow_rules(root / "flows")

    def test_flow_error_names_flow_type(self, write_corpus):
        """Test a schema error in a flow document names its flow type."""
        root = write_corpus(flows={"a.yml": {"flow_type": "auth", "name": "Auth", "extra": 1}})

        with pytest.raises(RuleLoadError) as exc_info:
            load_flow_rules(root / "flows")
        assert exc_info.value.rule_id == "auth"

    def test_missing_mappings_file(self, tmp_path):
        """Test a missing mappings file yields no mappings."""
        assert load_component_mappings(tmp_path / "missing.yml") == {}


class TestLoadKnowledge:
    """Tests for load_knowledge."""

    def test_small_corpus(self, small_knowledge, small_corpus):
        """Test rules, flows and mappings are all loaded."""
        assert [r.qualified_id for r in small_knowledge.rules] == [
            "destructive-actions/delete-no-confirmation",
            "error-states/form-field-errors",
        ]
        assert [f.flow_type for f in small_knowledge.flow_rules] == ["authentication"]
        assert list(small_knowledge.component_mappings) == ["error-states"]
        assert small_knowledge.source == str(small_corpus)
        assert small_knowledge.categories == ["destructive-actions", "error-states"]

    def test_lookups(self, small_knowledge):
        """Test rule and flow lookups by id."""
        assert small_knowledge.get_rule("error-states/form-field-errors") is not None
        assert small_knowledge.get_rule("form-field-errors") is None
        assert small_knowledge.get_flow_rule("authentication").name == "Authentication Flow"
        assert small_knowledge.get_flow_rule("checkout") is None

    def test_iter_patterns(self, small_knowledge):
        """Test every regex is yielded with its owner."""
        owners = {owner for owner, _ in small_knowledge.iter_patterns()}
        assert owners == {
            "authentication",
            "authentication/login",
            "authentication/forgot-password",
        }
