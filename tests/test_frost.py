"""
tests/test_frost.py — Tests for frost risk periods and warnings.
"""

from models import CropVariety, SowingPlan, TaskPlan
from frost import frost_risk, is_frost_date, frost_sensitive_plans, frost_warnings


VARIETIES = {
    ('tomato', 'moneymaker'): CropVariety(
        crop_id='tomato', variety_id='moneymaker', name='Moneymaker',
        days_to_transplant=56, days_to_harvest=120, start_month=2, end_month=4,
        frost_sensitivity='high',
    ),
    ('pea', 'kelvedon'): CropVariety(
        crop_id='pea', variety_id='kelvedon', name='Kelvedon Wonder',
        days_to_harvest=80, start_month=3, end_month=6, frost_sensitivity='moderate',
    ),
    ('lettuce', 'little-gem'): CropVariety(
        crop_id='lettuce', variety_id='little-gem', name='Little Gem',
        days_to_transplant=28, days_to_harvest=56, start_month=3, end_month=8,
        frost_sensitivity='low',
    ),
}


def lookup(crop_id, variety_id):
    return VARIETIES.get((crop_id, variety_id))


PLANS = [
    SowingPlan(id='tomato', crop_id='tomato', variety_id='moneymaker', sowing_date='2025-02-15'),
    SowingPlan(id='pea', crop_id='pea', variety_id='kelvedon', sowing_date='2025-03-10'),
    SowingPlan(id='lettuce', crop_id='lettuce', variety_id='little-gem', sowing_date='2025-03-01'),
    SowingPlan(id='late-pea', crop_id='pea', variety_id='kelvedon', sowing_date='2025-04-20'),
    TaskPlan(id='task', task_name='Fleece beds', start_date='2025-03-01'),
]


def test_risk_projected_onto_current_year():
    risk = frost_risk('2025-03-20', '2024-04-01', '2024-11-01')
    assert risk == {
        'spring_risk': True,
        'autumn_risk': False,
        'last_spring_frost': '2025-04-01',
        'first_autumn_frost': '2025-11-01',
    }


def test_no_risk_in_summer():
    risk = frost_risk('2025-07-01', '2024-04-01', '2024-11-01')
    assert not risk['spring_risk']
    assert not risk['autumn_risk']


def test_autumn_risk():
    assert frost_risk('2025-11-15', '2024-04-01', '2024-11-01')['autumn_risk']


def test_missing_setting():
    assert frost_risk('2025-03-20', None, '2024-11-01') is None


def test_is_frost_date():
    assert is_frost_date('2026-04-01', '2024-04-01', '2024-11-01')
    assert is_frost_date('2026-11-01', '2024-04-01', '2024-11-01')
    assert not is_frost_date('2026-04-02', '2024-04-01', '2024-11-01')


def test_sensitive_plans_in_ground():
    at_risk = frost_sensitive_plans(PLANS, lookup, '2025-03-20')
    assert [plan.id for plan, _ in at_risk] == ['tomato', 'pea']


def test_warnings_payload():
    warnings = frost_warnings(PLANS, lookup, '2025-03-20', '2024-04-01', '2024-11-01')
    assert warnings['spring_risk']
    assert warnings['plans'] == [
        {'plan_id': 'tomato', 'variety_name': 'Moneymaker', 'frost_sensitivity': 'high'},
        {'plan_id': 'pea', 'variety_name': 'Kelvedon Wonder', 'frost_sensitivity': 'moderate'},
    ]


def test_no_warnings_outside_risk_period():
    assert frost_warnings(PLANS, lookup, '2025-05-01', '2024-04-01', '2024-11-01') is None


def test_no_warnings_without_sensitive_plans():
    assert frost_warnings(PLANS[2:3], lookup, '2025-03-20', '2024-04-01', '2024-11-01') is None
