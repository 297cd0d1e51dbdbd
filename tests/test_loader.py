"""
Unit Tests for the Taxonomy Loader (nested JSON and pipeline CSV)
"""

import json
import logging

import pytest

from checklist_engine.standards.classification import (
    CLASSIFICATION_TABLE,
    DEFAULT_CLASSIFICATION,
    Classification,
    classify,
)
from checklist_engine.standards.loader import (
    SPVS_COLUMNS,
    TaxonomyLoadError,
    load_pipeline_taxonomy,
    load_standard,
    load_taxonomy,
    load_taxonomy_file,
)
from checklist_engine.standards.models import AXIS_ROLES, AXIS_TECHNOLOGIES
from checklist_engine.util.config import Config
from checklist_engine.util.types import Level, UserRole

SPVS_HEADER = ",".join([
    'Category ID', 'Category Name', 'Subcategory ID', 'Subcategory Name', 'Requirement ID',
    'Requirement Description', 'L1', 'L2', 'L3', 'NIST', 'OWASP', 'CWE', 'CWE Description',
])


def _item(code, ordinal=None, **fields):
    item = {'Shortcode': code, 'Description': f"Requirement {code}", 'level': 1}
    if ordinal is not None:
        item['Ordinal'] = ordinal
    item.update(fields)
    return item


def _document(*categories):
    return {'Requirements': list(categories)}


def _category(code, ordinal, name, *sections):
    return {'Shortcode': code, 'Ordinal': ordinal, 'Name': name, 'Items': list(sections)}


def _section(code, ordinal, name, *items):
    return {'Shortcode': code, 'Ordinal': ordinal, 'Name': name, 'Items': list(items)}


class TestNestedLoader:
    """Test suite for load_taxonomy on nested documents"""

    def test_controls_sorted_by_ordinal_triple(self, mini_index):
        """Source order does not matter, the ordinal triple does"""
        assert [c.id for c in mini_index.controls] == ['V1.1.1', 'V2.1.1', 'V2.1.2', 'V99.1.1']
        ordinals = [c.ordinal for c in mini_index.controls]
        assert ordinals == sorted(ordinals)
        assert len(set(ordinals)) == len(ordinals)

    def test_categories_and_subcategories(self, mini_index):
        """Test category ordering, code normalization and subcategory parents"""
        assert [c.id for c in mini_index.categories] == ['V1', 'V2', 'V99']
        assert [s.id for s in mini_index.subcategories] == ['V1.1', 'V2.1', 'V99.1']
        assert mini_index.subcategories[1].category_id == 'V2'
        assert mini_index.category_ids == frozenset({'V1', 'V2', 'V99'})

    def test_metadata_read_from_document(self, mini_index):
        assert mini_index.metadata.short_name == 'MINI'
        assert mini_index.metadata.version == '0.1'

    def test_levels_from_required_markers(self, mini_index):
        """Minimum level is the lowest flagged level; levels run up to L3"""
        first = mini_index.get('V2.1.1')
        assert first.level == Level.L2
        assert first.levels == frozenset({Level.L2, Level.L3})

        second = mini_index.get('V2.1.2')
        assert second.level == Level.L1
        assert second.levels == frozenset(Level)

        assert mini_index.get('V1.1.1').level == Level.L3

    def test_unparseable_level_degrades_to_l3(self, mini_document, caplog):
        """Test that a bad level is a warning, not an error"""
        with caplog.at_level(logging.WARNING):
            index = load_taxonomy(mini_document)

        control = index.get('V99.1.1')
        assert control.level == Level.L3
        assert control.levels == frozenset({Level.L3})
        assert any('V99.1.1' in record.getMessage() for record in caplog.records)

    @pytest.mark.parametrize('raw,expected', [
        (1, Level.L1),
        ('2', Level.L2),
        ('L2', Level.L2),
        (' l3 ', Level.L3),
    ])
    def test_level_field_spellings(self, raw, expected):
        index = load_taxonomy(_document(
            _category('V1', 1, 'Cat', _section('V1.1', 1, 'Sec', _item('V1.1.1', 1, level=raw)))
        ))
        assert index.get('V1.1.1').level == expected

    def test_explicit_levels_list(self):
        """An explicit levels list is taken as-is"""
        index = load_taxonomy(_document(
            _category('V1', 1, 'Cat', _section('V1.1', 1, 'Sec', _item('V1.1.1', 1, levels=['L1', 'L3'])))
        ))
        control = index.get('V1.1.1')
        assert control.level == Level.L1
        assert control.levels == frozenset({Level.L1, Level.L3})

    def test_description_whitespace_and_mappings(self, mini_index):
        control = mini_index.get('V2.1.2')
        assert control.description == 'Second password rule'
        assert control.cwe == '521'
        assert control.nist == '5.1.1.2'

    def test_missing_ordinals_use_source_position(self):
        index = load_taxonomy(_document(
            {'Shortcode': 'V1', 'Name': 'Cat', 'Items': [
                {'Shortcode': 'V1.1', 'Name': 'Sec', 'Items': [_item('V1.1.1'), _item('V1.1.2')]},
            ]},
        ))
        assert [c.ordinal for c in index.controls] == [(1, 1, 1), (1, 1, 2)]

    def test_lowercase_field_names(self):
        """Hand-written fixtures may use lower-case keys"""
        index = load_taxonomy({'categories': [
            {'id': 'v3', 'name': 'Session', 'ordinal': 3, 'sections': [
                {'id': 'v3.1', 'name': 'Fundamentals', 'ordinal': 1, 'requirements': [
                    {'id': 'V3.1.1', 'ordinal': 1, 'description': 'No tokens in URLs', 'level': 1},
                ]},
            ]},
        ]})
        assert index.get('V3.1.1').category_id == 'V3'
        assert index.get('V3.1.1').section_id == 'V3.1'

    def test_index_is_immutable(self, mini_index):
        with pytest.raises(TypeError):
            mini_index.by_id['X'] = None
        assert isinstance(mini_index.controls, tuple)


class TestLoaderErrors:
    """Test suite for fatal load failures"""

    @pytest.mark.parametrize('document', [
        'not a document',
        42,
        {'Requirements': 'nope'},
        {'Something': []},
        [{'Shortcode': 'V1', 'Name': 'No children'}],
        [{'Shortcode': 'V1', 'Name': 'Bad children', 'Items': 'x'}],
        [{'Name': 'No code', 'Items': []}],
        [{'Shortcode': 'V1', 'Items': [{'Shortcode': 'V1.1', 'Items': ['not an item']}]}],
        [{'Shortcode': 'V1', 'Items': [{'Shortcode': 'V1.1', 'Items': [{'Description': 'no id'}]}]}],
    ])
    def test_malformed_documents_are_fatal(self, document):
        with pytest.raises(TaxonomyLoadError):
            load_taxonomy(document)

    def test_duplicate_control_id(self):
        document = _document(
            _category('V1', 1, 'Cat', _section('V1.1', 1, 'Sec', _item('V1.1.1', 1), _item('V1.1.1', 2)))
        )
        with pytest.raises(TaxonomyLoadError, match='duplicate'):
            load_taxonomy(document)

    def test_duplicate_ordinal(self):
        document = _document(
            _category('V1', 1, 'Cat', _section('V1.1', 1, 'Sec', _item('V1.1.1', 1), _item('V1.1.2', 1)))
        )
        with pytest.raises(TaxonomyLoadError, match='collides'):
            load_taxonomy(document)

    def test_load_error_is_value_error(self):
        assert issubclass(TaxonomyLoadError, ValueError)

    def test_missing_file(self, tmp_path):
        with pytest.raises(TaxonomyLoadError):
            load_taxonomy_file(tmp_path / 'missing.json')

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('{"Requirements": [', encoding='utf-8')
        with pytest.raises(TaxonomyLoadError):
            load_taxonomy_file(path)


class TestNamingConflicts:
    """Test suite for codes that appear with two different names"""

    @pytest.fixture
    def conflicting_document(self):
        return _document(
            _category('V1', 1, 'Architecture', _section('V1.1', 1, 'Lifecycle', _item('V1.1.1', 1))),
            _category('V1', 1, 'Architecture Renamed', _section('V1.2', 2, 'Auth', _item('V1.2.1', 1))),
        )

    def test_first_name_kept_and_logged(self, conflicting_document, caplog):
        with caplog.at_level(logging.WARNING):
            index = load_taxonomy(conflicting_document)

        assert [c.name for c in index.categories] == ['Architecture']
        assert index.get('V1.2.1').category_name == 'Architecture'
        assert any('Architecture Renamed' in record.getMessage() for record in caplog.records)

    def test_strict_mode_rejects(self, conflicting_document):
        with pytest.raises(TaxonomyLoadError, match='V1'):
            load_taxonomy(conflicting_document, strict_names=True)


class TestClassification:
    """Test suite for the static category classification table"""

    def test_known_category_tags(self, mini_index):
        control = mini_index.get('V2.1.1')
        assert control.roles == CLASSIFICATION_TABLE['V2'].roles
        assert UserRole.EXECUTIVE.value not in control.roles

    def test_unknown_category_gets_default(self, mini_index):
        control = mini_index.get('V99.1.1')
        assert control.roles == DEFAULT_CLASSIFICATION.roles
        assert control.roles == frozenset(role.value for role in UserRole)

    def test_classify_is_case_insensitive(self):
        assert classify('v4') is CLASSIFICATION_TABLE['V4']
        assert classify('V404') is DEFAULT_CLASSIFICATION

    def test_empty_axis_rejected(self):
        with pytest.raises(ValueError):
            Classification(
                roles=frozenset(),
                application_types=DEFAULT_CLASSIFICATION.application_types,
                disciplines=DEFAULT_CLASSIFICATION.disciplines,
                technologies=DEFAULT_CLASSIFICATION.technologies,
            )

    def test_every_table_entry_is_non_empty(self):
        for code, classification in CLASSIFICATION_TABLE.items():
            assert classification.roles, code
            assert classification.technologies, code

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            CLASSIFICATION_TABLE['V1'] = DEFAULT_CLASSIFICATION

    def test_nested_standard_declares_all_axes(self, mini_index):
        assert mini_index.supports(AXIS_ROLES)
        assert mini_index.supports(AXIS_TECHNOLOGIES)


class TestPipelineLoader:
    """Test suite for the SPVS CSV loader"""

    @pytest.fixture
    def csv_path(self, tmp_path):
        rows = [
            SPVS_HEADER,
            'V1,Plan,V1.1,Identity,V1.1.1,"Enforce MFA, everywhere",X,X,X,IA-2,CICD-SEC-2,CWE-308,Single factor',
            'V1,Plan,V1.1,Identity,V1.1.2,Review service accounts,,X,X,AC-2,,,',
            '-,,,,,Divider row,,,,,,,',
            ',,,,,Another divider,,,,,,,',
            'v2,Develop,v2.5,Secrets,V2.5.1,Scan for secrets,,,,,,,',
            'V2,Develop,V2.5,Secrets,V2.5.2,Vault the secrets,,,X,SC-12,,,',
        ]
        path = tmp_path / 'spvs.csv'
        path.write_text("\n".join(rows) + "\n", encoding='utf-8')
        return path

    def test_rows_grouped_and_dividers_skipped(self, csv_path):
        index = load_pipeline_taxonomy(csv_path)

        assert [c.id for c in index.controls] == ['V1.1.1', 'V1.1.2', 'V2.5.1', 'V2.5.2']
        assert [c.id for c in index.categories] == ['V1', 'V2']
        assert [s.id for s in index.subcategories] == ['V1.1', 'V2.5']
        assert index.metadata.short_name == 'SPVS'

    def test_level_flags(self, csv_path):
        index = load_pipeline_taxonomy(csv_path)

        assert index.get('V1.1.2').levels == frozenset({Level.L2, Level.L3})
        assert index.get('V1.1.2').level == Level.L2
        assert index.get('V2.5.2').levels == frozenset({Level.L3})

    def test_row_without_flags_applies_to_all_levels(self, csv_path):
        index = load_pipeline_taxonomy(csv_path)
        assert index.get('V2.5.1').levels == frozenset(Level)

    def test_mapping_columns(self, csv_path):
        control = load_pipeline_taxonomy(csv_path).get('V1.1.1')
        assert control.description == 'Enforce MFA, everywhere'
        assert control.nist == 'IA-2'
        assert control.owasp_risk == 'CICD-SEC-2'
        assert control.cwe == 'CWE-308'
        assert control.cwe_description == 'Single factor'

    def test_pipeline_standard_has_no_tag_axes(self, csv_path):
        index = load_pipeline_taxonomy(csv_path)
        assert not index.supports(AXIS_ROLES)
        assert index.get('V1.1.1').tags == {}
        assert 'recommendedRoles' not in index.get('V1.1.1').to_dict()

    def test_short_rows_are_padded(self, tmp_path):
        path = tmp_path / 'short.csv'
        path.write_text('a,b,c,d,e,f\nV3,Integrate,V3.1,Build,V3.1.1,Ephemeral runners\n', encoding='utf-8')

        control = load_pipeline_taxonomy(path).get('V3.1.1')
        assert control.levels == frozenset(Level)
        assert control.nist == ''

    def test_too_few_columns_is_fatal(self, tmp_path):
        path = tmp_path / 'narrow.csv'
        path.write_text('a,b,c\n1,2,3\n', encoding='utf-8')
        with pytest.raises(TaxonomyLoadError):
            load_pipeline_taxonomy(path)

    def test_missing_or_empty_file_is_fatal(self, tmp_path):
        with pytest.raises(TaxonomyLoadError):
            load_pipeline_taxonomy(tmp_path / 'missing.csv')

        empty = tmp_path / 'empty.csv'
        empty.write_text('', encoding='utf-8')
        with pytest.raises(TaxonomyLoadError):
            load_pipeline_taxonomy(empty)

    def test_column_layout(self):
        assert len(SPVS_COLUMNS) == 13
        assert SPVS_COLUMNS[4] == 'requirement_id'


class TestBundledStandards:
    """Test suite for the standards shipped with the package"""

    def test_asvs_subset(self, asvs_index):
        assert asvs_index.metadata.version == '4.0.3'
        assert len(asvs_index) == 64
        assert [c.id for c in asvs_index.categories][:3] == ['V1', 'V2', 'V3']
        assert asvs_index.categories[-1].id == 'V14'
        assert len(asvs_index.categories) == 14

    def test_asvs_level_counts(self, asvs_index):
        assert sum(1 for c in asvs_index.controls if c.level == Level.L1) == 38
        assert sum(1 for c in asvs_index.controls if c.level <= Level.L2) == 60

    def test_spvs(self, spvs_index):
        assert spvs_index.metadata.version == '1.0.0'
        assert len(spvs_index) == 38
        assert [c.id for c in spvs_index.categories] == ['V1', 'V2', 'V3', 'V4', 'V5']

    def test_load_standard_by_name(self, isolated_env):
        config = Config()
        assert load_standard('ASVS', config).metadata.short_name == 'ASVS'
        assert load_standard('spvs', config).metadata.short_name == 'SPVS'
        with pytest.raises(ValueError):
            load_standard('pci', config)

    def test_load_standard_uses_configured_path(self, isolated_env, monkeypatch):
        path = isolated_env / 'custom.json'
        path.write_text(json.dumps(_document(
            _category('V1', 1, 'Cat', _section('V1.1', 1, 'Sec', _item('V1.1.1', 1)))
        )), encoding='utf-8')
        monkeypatch.setenv('ASVS_DATA_PATH', str(path))

        assert len(load_standard('asvs', Config())) == 1
