"""
Unit tests for rule tables, message tables and resource definitions.
"""

from types import MappingProxyType

import pytest

from services.constraints import (
    ArrayOf,
    Bounded,
    FieldType,
    Nullable,
    Required,
    TypeCheck,
    UniqueInCollection,
    Violation,
)
from services.rule_tables import (
    MISSING,
    MessageTable,
    OperationMode,
    ResourceKind,
    RuleTable,
    attribute_name,
    expand_path,
    get_definition,
    lookup_path,
)

pytestmark = pytest.mark.unit


class TestOperationMode:

    @pytest.mark.parametrize('method,mode', [
        ('POST', OperationMode.CREATE),
        ('post', OperationMode.CREATE),
        ('PUT', OperationMode.UPDATE),
        ('PATCH', OperationMode.UPDATE),
    ])
    def test_from_http_method(self, method, mode):
        assert OperationMode.from_http_method(method) is mode


class TestPaths:

    def test_lookup_path(self):
        payload = {'tags': ['a', 'b'], 'meta': {'source': 'upload'}}
        assert lookup_path(payload, 'tags.1') == 'b'
        assert lookup_path(payload, 'meta.source') == 'upload'
        assert lookup_path(payload, 'tags.2') is MISSING
        assert lookup_path(payload, 'title') is MISSING

    def test_expand_wildcard_over_list(self):
        assert expand_path('tags.*', {'tags': ['a', 'b', 'c']}) == ['tags.0', 'tags.1', 'tags.2']

    def test_expand_wildcard_over_mapping(self):
        assert expand_path('settings.*', {'settings': {'theme': 'dark'}}) == ['settings.theme']

    def test_expand_wildcard_over_scalar_is_empty(self):
        assert expand_path('tags.*', {'tags': 'a'}) == []
        assert expand_path('tags.*', {}) == []

    def test_plain_path_expands_to_itself(self):
        assert expand_path('title', {}) == ['title']

    def test_attribute_name(self):
        assert attribute_name('date_of_birth') == 'date of birth'


class TestRuleTable:

    def test_array_of_expands_to_element_entry(self):
        table = RuleTable({'tags': (Nullable(), ArrayOf(TypeCheck(FieldType.STRING), Bounded(maximum=50)))})
        assert list(table) == ['tags', 'tags.*']
        assert table.rules_for('tags') == ('nullable', 'array')
        assert table.rules_for('tags.*') == ('string', 'max')
        assert table.field_type('tags.*') is FieldType.STRING
        assert table.top_level_fields == ('tags',)

    def test_required_and_nullable_conflict(self):
        with pytest.raises(ValueError):
            RuleTable({'title': (Required(), Nullable())})

    def test_table_is_immutable(self):
        table = RuleTable({'title': (Required(),)})
        with pytest.raises(TypeError):
            table['title'] = ()
        assert isinstance(table._rules, MappingProxyType)


class TestMessageTable:

    @pytest.fixture(autouse=True)
    def setup_method(self):
        self.messages = MessageTable({
            'tags.*.max': 'Each tag cannot exceed 50 characters.',
            'tags.0.max': 'The first tag is too long.',
            'title.required': 'The document title is required.',
        })

    def test_concrete_key_wins(self):
        violation = Violation('max', {'max': 50, 'basis': 'string'})
        assert self.messages.render('tags.0', 'tags.*', violation) == 'The first tag is too long.'
        assert self.messages.render('tags.1', 'tags.*', violation) == 'Each tag cannot exceed 50 characters.'

    def test_default_message_by_basis(self):
        violation = Violation('max', {'max': 10240, 'basis': 'file'})
        assert self.messages.render('file', 'file', violation) == (
            'The file field must not be greater than 10240 kilobytes.'
        )

    def test_default_message_uses_attribute_name(self):
        assert self.messages.render('date_of_joining', 'date_of_joining', Violation('date')) == (
            'The date of joining field must be a valid date.'
        )

    def test_generic_fallback(self):
        assert self.messages.render('code', 'code', Violation('custom')) == (
            'The code field failed the custom constraint.'
        )

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            self.messages['title.required'] = 'changed'


class TestResourceDefinitions:

    @pytest.mark.parametrize('kind', list(ResourceKind))
    def test_every_kind_has_definition(self, kind):
        definition = get_definition(kind, OperationMode.CREATE)
        assert definition.kind is kind
        assert len(definition.rules) > 0
        assert definition.authorize(None) is True

    def test_definitions_are_cached(self):
        first = get_definition(ResourceKind.LOAN, OperationMode.CREATE)
        assert get_definition(ResourceKind.LOAN, OperationMode.CREATE) is first

    def test_document_file_only_on_create(self):
        create = get_definition(ResourceKind.DOCUMENT, OperationMode.CREATE).rules
        update = get_definition(ResourceKind.DOCUMENT, OperationMode.UPDATE, 7).rules
        assert create.rules_for('file') == ('required', 'file', 'max')
        assert create.rules_for('organization_id') == ('required', 'exists')
        assert 'file' not in update
        assert 'organization_id' not in update
        assert 'tags.*' in update

    def test_organization_password_presence(self):
        create = get_definition(ResourceKind.ORGANIZATION, OperationMode.CREATE).rules
        update = get_definition(ResourceKind.ORGANIZATION, OperationMode.UPDATE, 3).rules
        assert create.rules_for('password') == ('required', 'string', 'min')
        assert update.rules_for('password') == ('nullable', 'string', 'min')

    def test_unique_constraints_ignore_current_resource(self):
        rules = get_definition(ResourceKind.EMPLOYEE, OperationMode.UPDATE, 42).rules
        unique = [c for c in rules['email'] if isinstance(c, UniqueInCollection)]
        assert unique == [UniqueInCollection('employees', 'email', 42)]

    def test_enumerated_fields_are_required(self):
        rules = get_definition(ResourceKind.LOAN_REPAYMENT, OperationMode.CREATE).rules
        assert rules.rules_for('payment_method') == ('required', 'in')

    def test_message_tables_carry_resource_messages(self):
        messages = get_definition(ResourceKind.DOCUMENT, OperationMode.CREATE).messages
        assert messages['file.required'] == 'Please select a file to upload.'
        assert messages['tags.*.max'] == 'Each tag cannot exceed 50 characters.'
