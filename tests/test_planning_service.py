"""
tests/test_planning_service.py — Tests for the PlanningService.

Uses in-memory collaborators:
- MemoryStore records saved / deleted plans
- FailingStore raises PersistenceError on every write
"""

import pytest

from database import PersistenceError, PlanStore
from models import CropVariety, SowingPlan, TaskPlan
from planning_service import PlanningService


VARIETIES = {
    ('lettuce', 'little-gem'): CropVariety(
        crop_id='lettuce', variety_id='little-gem', name='Little Gem',
        days_to_transplant=28, days_to_harvest=56, start_month=3, end_month=8,
        group_id='lettuce',
    ),
    ('garlic', 'germidour'): CropVariety(
        crop_id='garlic', variety_id='germidour', name='Germidour',
        days_to_harvest=240, start_month=10, end_month=3, group_id='alliums',
    ),
}


class MemoryInventory:
    def get_variety(self, crop_id, variety_id):
        return VARIETIES.get((crop_id, variety_id))


class MemoryStore:
    def __init__(self, plans=None):
        self.saved = {}
        self.deleted = []
        self.initial = plans or []

    def save(self, plan):
        self.saved[plan.id] = plan

    def delete(self, plan_id):
        self.deleted.append(plan_id)
        self.saved.pop(plan_id, None)

    def load_plans(self):
        return list(self.initial)


class FailingStore(MemoryStore):
    def save(self, plan):
        raise PersistenceError("disk full")

    def delete(self, plan_id):
        raise PersistenceError("disk full")


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store):
    return PlanningService(store, MemoryInventory())


class TestCreation:

    def test_add_sowing_plan(self, service, store):
        plan, error = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01',
                                              succession_interval='14', succession_count='3')
        assert error is None
        assert plan.sowing_date == '2024-04-01'
        assert plan.succession_count == 3
        assert plan.last_modified is not None
        assert store.saved[plan.id] == plan
        assert service.get_plan(plan.id) == plan

    def test_outside_sowing_window(self, service, store):
        plan, error = service.add_sowing_plan('lettuce', 'little-gem', '2024-01-15')
        assert plan is None
        assert error == "This variety can only be sown between March and August."
        assert store.saved == {}

    def test_wraparound_window(self, service):
        plan, error = service.add_sowing_plan('garlic', 'germidour', '2024-11-05')
        assert error is None
        plan, error = service.add_sowing_plan('garlic', 'germidour', '2024-06-05')
        assert plan is None

    def test_skip_sowing_back_dates(self, service):
        plan, error = service.add_sowing_plan('lettuce', 'little-gem', '2024-05-01', skip_sowing_date=True)
        assert error is None
        assert plan.sowing_date == '2024-04-03'
        assert plan.skip_sowing_date is True

        generations = service.expand(plan.id)
        assert generations[0].transplant_date == '2024-05-01'
        assert not generations[0].show_sowing

    def test_skip_sowing_ignores_window(self, service):
        plan, error = service.add_sowing_plan('lettuce', 'little-gem', '2024-12-20', skip_sowing_date=True)
        assert error is None
        assert plan.sowing_date == '2024-11-22'

    def test_unknown_variety(self, service):
        assert service.add_sowing_plan('lettuce', 'iceberg', '2024-04-01') == (None, "Invalid variety selected.")

    @pytest.mark.parametrize("interval,count", [(0, 3), (14, 0), ('x', 2)])
    def test_bad_succession(self, service, interval, count):
        plan, error = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01',
                                              succession_interval=interval, succession_count=count)
        assert plan is None
        assert error

    def test_add_task_plan(self, service):
        plan, error = service.add_task_plan('  Weeding ', '2024-03-01', succession_interval=7, succession_count=4)
        assert error is None
        assert isinstance(plan, TaskPlan)
        assert plan.task_name == 'Weeding'
        assert len(service.expand(plan.id)) == 4

    def test_task_requires_name(self, service):
        assert service.add_task_plan('', '2024-03-01') == (None, "Please enter a task name.")


class TestEditing:

    def test_update_plan(self, service):
        plan, _ = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01', succession_count=2)
        updated, error = service.update_plan(plan.id, anchor_date='2024-04-08', succession_count=5, notes='Bed 2')

        assert error is None
        assert updated.sowing_date == '2024-04-08'
        assert updated.succession_count == 5
        assert updated.succession_interval == 14
        assert updated.notes == 'Bed 2'

    def test_update_task_start(self, service):
        task, _ = service.add_task_plan('Mulch', '2024-05-01')
        updated, _ = service.update_plan(task.id, anchor_date='2024-05-15')
        assert updated.start_date == '2024-05-15'

    def test_update_rejects_bad_count(self, service):
        plan, _ = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01')
        updated, error = service.update_plan(plan.id, succession_count=0)
        assert updated is None
        assert service.get_plan(plan.id).succession_count == 1

    def test_update_unknown(self, service):
        assert service.update_plan('nope') == (None, "Plan not found.")

    def test_delete(self, service, store):
        plan, _ = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01')
        assert service.delete_plan(plan.id) == (True, None)
        assert service.get_plan(plan.id) is None
        assert store.deleted == [plan.id]
        assert service.delete_plan(plan.id) == (False, "Plan not found.")


class TestTransitions:

    @pytest.fixture
    def plan(self, service):
        plan, _ = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01')
        return plan

    def test_damage_uses_variety(self, service, plan):
        updated, error = service.report_damage(plan.id, '2024-04-29', 'pests')
        # 28 days left * 1.25 = 35
        assert error is None
        assert updated.estimated_harvest_date == '2024-06-03'
        assert service.get_plan(plan.id).status == 'damaged'

    def test_loss_then_harvest_rejected(self, service, plan):
        service.report_loss(plan.id, '2024-04-20', 'frost')
        updated, error = service.mark_harvested(plan.id, '2024-05-27')
        assert updated is None
        assert error == "This plan has been marked as failed."
        assert service.get_plan(plan.id).status == 'failed'

    def test_estimate_and_harvest(self, service, plan):
        service.update_harvest_estimate(plan.id, '2024-06-01')
        updated, error = service.mark_harvested(plan.id, '2024-06-02')
        assert error is None
        assert updated.harvest_date == '2024-06-02'
        assert updated.estimated_harvest_date == '2024-06-01'

    def test_task_plan_rejected(self, service):
        task, _ = service.add_task_plan('Weeding', '2024-03-01')
        updated, error = service.report_damage(task.id, '2024-03-02', 'pests')
        assert updated is None
        assert error == "Status updates only apply to sowing plans."

    def test_unknown_plan(self, service):
        assert service.mark_harvested('nope', '2024-06-01') == (None, "Plan not found.")


class TestPersistenceFailure:

    @pytest.fixture
    def failing(self):
        return PlanningService(FailingStore(), MemoryInventory())

    def test_create_kept_locally(self, failing):
        plan, error = failing.add_sowing_plan('lettuce', 'little-gem', '2024-04-01')
        assert plan is not None
        assert "could not be saved" in error
        assert failing.get_plan(plan.id) == plan

    def test_transition_kept_locally(self, failing):
        plan, _ = failing.add_sowing_plan('lettuce', 'little-gem', '2024-04-01')
        updated, error = failing.report_loss(plan.id, '2024-04-10', 'disease')
        assert updated.status == 'failed'
        assert error
        assert failing.get_plan(plan.id).status == 'failed'

    def test_delete_kept_locally(self, failing):
        plan, _ = failing.add_sowing_plan('lettuce', 'little-gem', '2024-04-01')
        deleted, error = failing.delete_plan(plan.id)
        assert deleted is True
        assert "could not be removed" in error
        assert failing.get_plan(plan.id) is None


def test_load_from_store():
    stored = [
        SowingPlan(id='a', crop_id='lettuce', variety_id='little-gem', sowing_date='2024-04-01'),
        TaskPlan(id='b', task_name='Weeding', start_date='2024-04-01'),
    ]
    service = PlanningService(MemoryStore(stored), MemoryInventory())
    assert service.load() == 2
    assert [p.id for p in service.list_plans()] == ['a', 'b']


def test_unwritable_database_keeps_plan_locally(tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('not a directory')
    service = PlanningService(PlanStore(str(blocker / 'garden.db')), MemoryInventory())

    plan, error = service.add_task_plan('Weeding', '2024-03-01')
    assert plan is not None
    assert "could not be saved" in error
    assert service.get_plan(plan.id) == plan


class TestScheduleRange:

    def test_oversized_succession_rejected(self, service, store):
        plan, error = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01',
                                              succession_interval=10000, succession_count=400)
        assert plan is None
        assert error == "The succession runs past the last supported date."
        assert store.saved == {}

    def test_edit_into_oversized_succession_rejected(self, service):
        plan, _ = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01')
        updated, error = service.update_plan(plan.id, succession_interval=10000, succession_count=400)
        assert updated is None
        assert error == "The succession runs past the last supported date."
        assert service.get_plan(plan.id).succession_count == 1

    def test_edit_anchor_near_calendar_end_rejected(self, service):
        task, _ = service.add_task_plan('Weeding', '2024-03-01', succession_interval=30, succession_count=2)
        updated, error = service.update_plan(task.id, anchor_date='9999-12-15')
        assert updated is None
        assert service.get_plan(task.id).start_date == '2024-03-01'

    def test_damage_past_calendar_end(self, service):
        plan, _ = service.add_sowing_plan('lettuce', 'little-gem', '2024-04-01')
        service.update_harvest_estimate(plan.id, '9999-06-01')
        updated, error = service.report_damage(plan.id, '2024-05-01', 'frost')
        assert updated is None
        assert error == "The extended harvest date is out of range."
        assert service.get_plan(plan.id).status is None
