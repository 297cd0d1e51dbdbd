"""
Unit Tests for the checklist and questionnaire services
"""

import pytest

from checklist_engine.scoring.engine import ScoringEngine
from checklist_engine.scoring.pipeline import PIPELINE_QUESTIONNAIRE
from checklist_engine.service import (
    ChecklistService,
    QuestionnaireService,
    parse_level_filter,
    parse_list_filter,
    validate_answers,
    validate_tag,
)
from checklist_engine.state.store import InMemoryRecordStore


class TestFilterParsing:
    """Test suite for boundary parsing helpers"""

    def test_level_filter(self):
        assert parse_level_filter('l1, L3,L9, l1') == ['L1', 'L3']
        assert parse_level_filter(['2', 'bogus']) == ['L2']
        assert parse_level_filter(None) == []
        assert parse_level_filter('') == []

    def test_list_filter(self):
        assert parse_list_filter('v1, V1 ,v3,,') == ['V1', 'V3']
        assert parse_list_filter(['v10', 'v2']) == ['V10', 'V2']
        assert parse_list_filter(None) == []

    def test_validate_tag(self):
        assert validate_tag('roles', 'Developer') == 'developer'
        assert validate_tag('technologies', 'all', required=False) is None
        assert validate_tag('disciplines', None, required=False) is None
        with pytest.raises(ValueError):
            validate_tag('roles', 'astronaut')
        with pytest.raises(ValueError):
            validate_tag('roles', None)


class TestChecklistService:
    """Test suite for ChecklistService"""

    @pytest.fixture
    def asvs_service(self, asvs_index):
        return ChecklistService(asvs_index)

    @pytest.fixture
    def spvs_service(self, spvs_index):
        return ChecklistService(spvs_index)

    def test_build_checklist(self, asvs_service):
        result = asvs_service.build_checklist('l2', 'WEB', 'developer', categories='v2, V2')

        metadata = result['metadata']
        assert metadata['shortName'] == 'ASVS'
        assert metadata['totalRequirements'] == 64
        assert metadata['totalControls'] == 64
        assert metadata['resultCount'] == len(result['tasks'])
        assert metadata['filters'] == {
            'level': 'L2',
            'applicationType': 'web',
            'role': 'developer',
            'discipline': None,
            'technology': None,
            'categories': ['V2'],
        }
        assert result['tasks']
        assert all(task['categoryId'] == 'V2' for task in result['tasks'])
        assert all(task['level'] in ('L1', 'L2') for task in result['tasks'])
        assert 'recommendedRoles' in result['tasks'][0]

    def test_build_checklist_rejects_bad_input(self, asvs_service):
        with pytest.raises(ValueError):
            asvs_service.build_checklist('L4', 'web', 'developer')
        with pytest.raises(ValueError):
            asvs_service.build_checklist('L1', 'desktop', 'developer')
        with pytest.raises(ValueError):
            asvs_service.build_checklist('L1', 'web', 'developer', discipline='astronaut')

    def test_select_checklist_returns_controls(self, asvs_service):
        controls, filters = asvs_service.select_checklist('L1', 'api', 'tester', technology='all')
        assert controls
        assert filters['technology'] is None
        assert all(control.level.label == 'L1' for control in controls)

    def test_search(self, spvs_service):
        result = spvs_service.search(search='secret', levels='l3,bogus', categories='v2')

        assert result['metadata']['filters'] == {
            'search': 'secret',
            'levels': ['L3'],
            'categories': ['V2'],
            'subcategories': [],
        }
        assert result['metadata']['resultCount'] == len(result['requirements'])
        assert {r['categoryId'] for r in result['requirements']} == {'V2'}

    def test_search_without_filters(self, spvs_service):
        result = spvs_service.search()
        assert result['metadata']['filters']['search'] is None
        assert len(result['requirements']) == 38

    def test_taxonomy(self, spvs_service):
        result = spvs_service.taxonomy()
        assert result['metadata']['shortName'] == 'SPVS'
        assert [c['id'] for c in result['categories']] == ['V1', 'V2', 'V3', 'V4', 'V5']
        assert {'id': 'V3.2', 'name': 'Pipeline Secrets', 'categoryId': 'V3'} in result['subcategories']


class TestQuestionnaireService:
    """Test suite for QuestionnaireService"""

    @pytest.fixture
    def service(self, spvs_index, stepping_clock):
        engine = ScoringEngine(PIPELINE_QUESTIONNAIRE, index=spvs_index)
        return QuestionnaireService(engine, InMemoryRecordStore(clock=stepping_clock))

    def test_questions(self, service):
        questions = service.questions()
        assert len(questions) == 11
        assert questions[0]['id'] == 'usesHostedRunners'
        assert 'helpText' in questions[0]

    def test_submit_and_get(self, service):
        record = service.submit(' alice ', {'managesPipelineSecrets': True, 'deploysToProduction': True})

        assert record.user_id == 'alice'
        assert record.questionnaire == 'spvs'
        assert record.answers == {'managesPipelineSecrets': True, 'deploysToProduction': True}
        assert record.recommendation.score == 5
        assert service.get('alice') == record
        assert service.get(' alice ') == record

    def test_resubmit_keeps_created_at(self, service):
        first = service.submit('alice', {})
        second = service.submit('alice', {'handlesPayments': True}, role='developer')

        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at
        assert second.role == 'developer'

    def test_get_unknown(self, service):
        assert service.get('nobody') is None
        assert service.get('   ') is None

    def test_submit_validation(self, service):
        with pytest.raises(ValueError):
            service.submit('', {})
        with pytest.raises(ValueError):
            service.submit('   ', {})
        with pytest.raises(ValueError):
            service.submit('alice', {}, role='astronaut')

    @pytest.mark.parametrize('answers', [
        {'handlesPayments': 'false'},
        {'handlesPayments': 0},
        {'deploysToProduction': True, 'requiresAuditTrail': None},
        ['handlesPayments'],
    ])
    def test_submit_rejects_non_boolean_answers(self, service, answers):
        """A string "false" must not be scored as a yes"""
        with pytest.raises(ValueError):
            service.submit('alice', answers)
        assert service.get('alice') is None

    def test_validate_answers(self):
        assert validate_answers(None) == {}
        assert validate_answers({'handlesPayments': False}) == {'handlesPayments': False}
        with pytest.raises(ValueError, match='handlesPayments'):
            validate_answers({'handlesPayments': 'false', 'storesPII': True})

    def test_default_store(self):
        service = QuestionnaireService(ScoringEngine(PIPELINE_QUESTIONNAIRE))
        assert isinstance(service.store, InMemoryRecordStore)
