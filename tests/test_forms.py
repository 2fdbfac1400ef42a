"""
Tests for utils/forms.py: payload building and input coercion
"""
import pytest

from utils.forms import (
    FormValidationError,
    activity_from_form,
    activity_to_form,
    crop_from_form,
    expense_from_form,
    to_float,
    to_int,
)


@pytest.mark.parametrize('value, expected', [
    ('12.5', 12.5),
    (' 3 ', 3.0),
    ('abc', 0.0),
    ('', 0.0),
    (None, 0.0),
    ('nan', 0.0),
    ('inf', 0.0),
])
def test_to_float(value, expected):
    assert to_float(value) == expected


def test_to_int():
    assert to_int('4') == 4
    assert to_int('x') == 0
    assert to_int(None) == 0


class TestCropForm:
    def test_payload(self):
        payload = crop_from_form({'name': ' Wheat ', 'variety': 'HD-2967', 'area': '2.5',
                                  'plantingDate': '2024-01-10', 'harvestDate': ''})
        assert payload == {'name': 'Wheat', 'variety': 'HD-2967', 'area': 2.5,
                           'plantingDate': '2024-01-10', 'harvestDate': None, 'notes': ''}

    def test_required_fields(self):
        with pytest.raises(FormValidationError) as exc:
            crop_from_form({'name': 'Wheat'})
        assert set(exc.value.errors) == {'variety', 'area', 'plantingDate'}

    def test_bad_date(self):
        with pytest.raises(FormValidationError) as exc:
            crop_from_form({'name': 'Wheat', 'variety': 'x', 'area': '1',
                            'plantingDate': '10/01/2024'})
        assert 'plantingDate' in exc.value.errors

    def test_non_numeric_area_becomes_zero(self):
        payload = crop_from_form({'name': 'Wheat', 'variety': 'x', 'area': 'lots',
                                  'plantingDate': '2024-01-10'})
        assert payload['area'] == 0.0


class TestActivityForm:
    def test_crop_reference(self):
        payload = activity_from_form({'type': 'Irrigation', 'description': 'water',
                                      'date': '2024-01-15', 'cropId': '3'})
        assert payload['cropId'] == 3
        assert payload['crop'] == {'id': 3}

    def test_zero_crop_means_no_crop(self):
        payload = activity_from_form({'type': 'Other', 'description': 'fence repair',
                                      'date': '2024-01-15', 'cropId': '0'})
        assert payload['crop'] is None

    def test_prefill_reads_embedded_crop(self):
        form = activity_to_form({'type': 'Weeding', 'date': '2024-01-01', 'crop': {'id': 5, 'name': 'Rice'}})
        assert form['cropId'] == 5
        assert form['description'] == ''


class TestExpenseForm:
    def test_payload(self):
        payload = expense_from_form({'expenseTitle': 'Diesel', 'amount': '400', 'category': 'Fuel',
                                     'expenseDate': '2024-03-02'})
        assert payload['amount'] == 400.0
        assert payload['description'] == ''

    def test_missing_amount(self):
        with pytest.raises(FormValidationError) as exc:
            expense_from_form({'expenseTitle': 'Diesel', 'category': 'Fuel', 'expenseDate': '2024-03-02'})
        assert exc.value.errors == {'amount': 'Amount is required'}
