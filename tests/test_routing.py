"""Tests for routing rule lookup against the configuration table."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from sqlalchemy.exc import OperationalError  # noqa: E402

from conftest import insert_routing_rule  # noqa: E402
from daws_edge.api.schemas import FormKind  # noqa: E402
from daws_edge.db.repositories import RoutingRule, RoutingRuleRepository  # noqa: E402
from daws_edge.exceptions import DatabaseError  # noqa: E402
from daws_edge.services.routing import (  # noqa: E402
    NO_ACTIVE_RULE,
    NO_TO_RECIPIENTS,
    load_routing_rule,
    resolve_recipients,
)


def _rule(**overrides) -> RoutingRule:
    values = {
        'form_kind': 'speaker',
        'form_label': 'Become a Speaker',
        'to_emails': ['Speakers@Example.com'],
        'cc_emails': [],
        'enabled': True,
    }
    values.update(overrides)
    return RoutingRule(**values)


class TestRoutingRuleRepository:
    def test_find_by_form_kind(self, test_engine, session_factory) -> None:
        insert_routing_rule(test_engine, 'speaker', 'a@example.com', form_label=' Speakers ')

        with session_factory() as session:
            rule = RoutingRuleRepository(session).find_by_form_kind('speaker')

        assert rule is not None
        assert rule.form_label == 'Speakers'
        assert rule.to_emails == 'a@example.com'
        assert rule.enabled is True

    def test_missing_row(self, session_factory) -> None:
        with session_factory() as session:
            assert RoutingRuleRepository(session).find_by_form_kind('job') is None


class TestLoadRoutingRule:
    def test_loads_rule(self, test_engine, session_factory) -> None:
        insert_routing_rule(test_engine, 'member', 'm@example.com', enabled=False)
        rule = load_routing_rule(FormKind.MEMBER, 'form_email_routing', session_factory)
        assert rule is not None
        assert rule.enabled is False

    def test_configured_table_name(self, test_engine, session_factory) -> None:
        with pytest.raises(DatabaseError) as exc_info:
            load_routing_rule(FormKind.GENERAL, 'missing_routing_table', session_factory)

        assert exc_info.value.status_code == 500
        assert exc_info.value.message.startswith('Unable to load form routing settings: ')
        assert 'missing_routing_table' in exc_info.value.message

    def test_connection_failure(self, mocker) -> None:
        factory = mocker.Mock(side_effect=OperationalError('SELECT', {}, Exception('connection refused')))
        with pytest.raises(DatabaseError) as exc_info:
            load_routing_rule(FormKind.GENERAL, 'form_email_routing', factory)
        assert 'connection refused' in exc_info.value.message


class TestResolveRecipients:
    def test_missing_rule_is_skipped(self) -> None:
        decision = resolve_recipients(None, FormKind.SPEAKER)
        assert decision.skipped
        assert decision.skip_reason == NO_ACTIVE_RULE

    def test_disabled_rule_is_skipped(self) -> None:
        decision = resolve_recipients(_rule(enabled=False), FormKind.SPEAKER)
        assert decision.skip_reason == NO_ACTIVE_RULE

    def test_no_valid_to_is_skipped_even_with_cc(self) -> None:
        rule = _rule(to_emails=['not-an-email', ''], cc_emails=['cc@example.com'])
        decision = resolve_recipients(rule, FormKind.SPEAKER, ('default@example.com',))
        assert decision.skipped
        assert decision.skip_reason == NO_TO_RECIPIENTS

    def test_recipients_normalized(self) -> None:
        rule = _rule(
            to_emails='A@example.com, a@example.com; b@example.com',
            cc_emails=['C@example.com', 'bad'],
        )
        decision = resolve_recipients(rule, FormKind.SPEAKER, ('d@example.com', 'c@example.com'))

        assert not decision.skipped
        assert decision.recipients.to == ('a@example.com', 'b@example.com')
        assert decision.recipients.cc == ('c@example.com', 'd@example.com')
        assert decision.recipients.form_label == 'Become a Speaker'

    def test_label_falls_back_to_form_kind(self) -> None:
        decision = resolve_recipients(_rule(form_label=''), FormKind.SPEAKER)
        assert decision.recipients.form_label == 'speaker'
