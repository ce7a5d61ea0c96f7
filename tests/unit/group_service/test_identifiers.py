"""Canonical identifier normalisation."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from group_service.provisioning.identifiers import canonical_id, normalize_handle


class InputPeerSelf:
    """Shape-alike of telethon.tl.types.InputPeerSelf."""


class TestCanonicalId:
    @pytest.mark.parametrize(
        'value, expected',
        [
            (123456789, '123456789'),
            ('123456789', '123456789'),
            (' 0042 ', '42'),
            (123456789.0, '123456789'),
            ('-100123', '-100123'),
            ('-0123', '-123'),
            (SimpleNamespace(user_id=55), '55'),
        ],
    )
    def test_numeric_forms(self, value, expected):
        assert canonical_id(value) == expected

    @pytest.mark.parametrize('value', [None, True, '', 'abc', 1.5, '12a', object()])
    def test_non_ids_are_none(self, value):
        assert canonical_id(value) is None

    def test_self_markers_map_to_self_id(self):
        assert canonical_id('self', self_id='1000') == '1000'
        assert canonical_id('ME', self_id='1000') == '1000'
        assert canonical_id(InputPeerSelf(), self_id='1000') == '1000'

    def test_self_marker_without_self_id_is_none(self):
        assert canonical_id('self') is None


class TestFacilitatorForms:
    def test_all_representations_compare_equal(self):
        forms = [1000, '1000', 'self', InputPeerSelf()]

        assert {canonical_id(f, self_id='1000') for f in forms} == {'1000'}


class TestNormalizeHandle:
    def test_strips_at_and_whitespace(self):
        assert normalize_handle('  @owner_anna ') == 'owner_anna'

    @pytest.mark.parametrize('value', [None, '', '@', '   '])
    def test_empty_handles(self, value):
        assert normalize_handle(value) is None
