"""
planning_service.py — In-memory owner of the user's plans.

The service holds the current plans, applies validated creations, edits and
status transitions, and hands every changed plan to the injected store.

Update policy (local first):
1. Validate; on failure nothing changes and (None, error) is returned
2. Apply the change to the in-memory plans
3. Persist through store.save / store.delete
4. If persistence fails the in-memory change is kept and the updated plan
   is returned together with the error message, so the caller can retry
   or revert

Collaborators:
- store: object with save(plan), delete(plan_id) and optionally load_plans()
- inventory: object with get_variety(crop_id, variety_id)
"""

import logging
import uuid
from collections import OrderedDict
from dataclasses import replace

from database import PersistenceError, now_iso
from models import SowingPlan, TaskPlan
from succession_engine import back_date_sowing, expand_plan
from utils.dates import parse_date, to_iso
from utils.validators import (
    validate_sowing_plan, validate_task_plan, validate_succession, validate_schedule_range,
)
import status_engine

_LOGGER = logging.getLogger(__name__)


def new_plan_id():
    return uuid.uuid4().hex


class PlanningService:
    """Plans of one user session plus the actions that change them."""

    def __init__(self, store, inventory):
        self.store = store
        self.inventory = inventory
        self._plans = OrderedDict()

    # ----------------------------------------
    # Reading
    # ----------------------------------------

    def load(self, plans=None):
        """Replace the in-memory plans (defaults to the store's contents)."""
        if plans is None:
            plans = self.store.load_plans()
        self._plans = OrderedDict((plan.id, plan) for plan in plans)
        _LOGGER.debug("Loaded %d plans", len(self._plans))
        return len(self._plans)

    def list_plans(self):
        return list(self._plans.values())

    def get_plan(self, plan_id):
        return self._plans.get(plan_id)

    def get_variety(self, crop_id, variety_id):
        return self.inventory.get_variety(crop_id, variety_id)

    def variety_for(self, plan):
        """Resolved variety of a sowing plan (None for tasks or unknown ids)."""
        if isinstance(plan, SowingPlan):
            return self.get_variety(plan.crop_id, plan.variety_id)
        return None

    def expand(self, plan_id):
        """Generations or task occurrences of one plan, None if unavailable."""
        plan = self.get_plan(plan_id)
        if plan is None:
            return None
        return expand_plan(plan, self.variety_for(plan))

    # ----------------------------------------
    # Persistence
    # ----------------------------------------

    def _commit(self, plan):
        """Store `plan` in memory first, then persist it."""
        plan = replace(plan, last_modified=now_iso())
        self._plans[plan.id] = plan
        try:
            self.store.save(plan)
        except PersistenceError as e:
            _LOGGER.warning("Plan %s updated locally but not saved: %s", plan.id, e)
            return plan, f"Plan updated locally but could not be saved: {e}"
        return plan, None

    # ----------------------------------------
    # Creation / editing / deletion
    # ----------------------------------------

    def add_sowing_plan(self, crop_id, variety_id, date, succession_interval=14,
                        succession_count=1, skip_sowing_date=False, notes=None):
        """
        Create a sowing plan from the scheduling form.

        When skip_sowing_date is set, `date` is the transplant date and the
        stored sowing date is back-computed from the variety's
        days_to_transplant.

        Returns:
            (plan, None) on success, (plan, error) if only persistence
            failed, or (None, error) when validation fails.
        """
        variety = self.get_variety(crop_id, variety_id)
        if variety is None:
            return None, "Invalid variety selected."

        entered = parse_date(date)
        if entered is None:
            return None, "Invalid sowing date."

        sowing_date = to_iso(entered)
        if skip_sowing_date:
            sowing_date = back_date_sowing(entered, variety.days_to_transplant)

        try:
            interval = int(succession_interval)
            count = int(succession_count)
        except (TypeError, ValueError):
            return None, "Succession interval and count must be whole numbers."

        plan = SowingPlan(
            id=new_plan_id(),
            crop_id=crop_id,
            variety_id=variety_id,
            sowing_date=sowing_date,
            succession_interval=interval,
            succession_count=count,
            skip_sowing_date=bool(skip_sowing_date),
            notes=notes or None,
        )

        ok, error = validate_sowing_plan(plan, variety)
        if not ok:
            _LOGGER.info("Rejected sowing plan for %s/%s: %s", crop_id, variety_id, error)
            return None, error

        return self._commit(plan)

    def add_task_plan(self, task_name, start_date, succession_interval=30,
                      succession_count=1, task_id='', task_description='', notes=None):
        """
        Create a recurring task plan.

        Returns:
            Same contract as add_sowing_plan().
        """
        start = parse_date(start_date)
        try:
            interval = int(succession_interval)
            count = int(succession_count)
        except (TypeError, ValueError):
            return None, "Succession interval and count must be whole numbers."

        plan = TaskPlan(
            id=new_plan_id(),
            task_id=task_id or '',
            task_name=(task_name or '').strip(),
            task_description=task_description or '',
            start_date=to_iso(start) if start else '',
            succession_interval=interval,
            succession_count=count,
            notes=notes or None,
        )

        ok, error = validate_task_plan(plan)
        if not ok:
            _LOGGER.info("Rejected task plan %r: %s", task_name, error)
            return None, error

        return self._commit(plan)

    def update_plan(self, plan_id, anchor_date=None, succession_interval=None,
                    succession_count=None, notes=None):
        """
        Edit the schedule of an existing plan.

        Only the given fields change. For sowing plans `anchor_date` is the
        stored sowing date; for task plans it is the start date. The sowing
        window is not re-checked on edits.

        Returns:
            (plan, error) as for creation; (None, error) if the plan is unknown.
        """
        plan = self.get_plan(plan_id)
        if plan is None:
            return None, "Plan not found."

        changes = {}
        if anchor_date is not None:
            day = parse_date(anchor_date)
            if day is None:
                return None, "Invalid date."
            key = 'sowing_date' if isinstance(plan, SowingPlan) else 'start_date'
            changes[key] = to_iso(day)

        interval = plan.succession_interval if succession_interval is None else succession_interval
        count = plan.succession_count if succession_count is None else succession_count
        ok, error = validate_succession(interval, count)
        if not ok:
            return None, error
        changes['succession_interval'] = int(interval)
        changes['succession_count'] = int(count)

        variety = self.variety_for(plan)
        extra_days = max(variety.days_to_transplant, variety.days_to_harvest) if variety else 0
        ok, error = validate_schedule_range(
            changes.get('sowing_date') or changes.get('start_date') or plan.anchor_date,
            interval, count, extra_days=extra_days,
        )
        if not ok:
            return None, error

        if notes is not None:
            changes['notes'] = notes or None

        return self._commit(replace(plan, **changes))

    def delete_plan(self, plan_id):
        """
        Delete a plan.

        Returns:
            (True, None) on success, (True, error) if only persistence
            failed, or (False, error) for an unknown plan.
        """
        if plan_id not in self._plans:
            return False, "Plan not found."

        del self._plans[plan_id]
        try:
            self.store.delete(plan_id)
        except PersistenceError as e:
            _LOGGER.warning("Plan %s deleted locally but not in storage: %s", plan_id, e)
            return True, f"Plan deleted locally but could not be removed from storage: {e}"
        return True, None

    # ----------------------------------------
    # Status transitions
    # ----------------------------------------

    def _transition(self, plan_id, apply):
        plan = self.get_plan(plan_id)
        if plan is None:
            return None, "Plan not found."

        updated, error = apply(plan)
        if error:
            _LOGGER.info("Rejected status update on plan %s: %s", plan_id, error)
            return None, error
        return self._commit(updated)

    def report_damage(self, plan_id, report_date, damage_type, notes=''):
        return self._transition(
            plan_id,
            lambda plan: status_engine.report_damage(
                plan, report_date, damage_type, variety=self.variety_for(plan), notes=notes
            ),
        )

    def report_loss(self, plan_id, report_date, loss_type, notes=''):
        return self._transition(
            plan_id,
            lambda plan: status_engine.report_loss(plan, report_date, loss_type, notes=notes),
        )

    def update_harvest_estimate(self, plan_id, new_date):
        return self._transition(
            plan_id,
            lambda plan: status_engine.update_harvest_estimate(plan, new_date),
        )

    def mark_harvested(self, plan_id, harvest_date):
        return self._transition(
            plan_id,
            lambda plan: status_engine.mark_harvested(plan, harvest_date),
        )
