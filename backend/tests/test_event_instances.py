"""
Materializer and reconciler tests.

Every call takes an explicit now so results do not depend on the wall clock.
"""

from datetime import datetime

from migdalor.models import EventInstance, EventParticipation
from migdalor.services import event_instance_service, event_service
from conftest import make_resident


CREATED_AT = datetime(2025, 1, 1, 8, 0)


def _starts(session, event_id):
    return [
        row[0]
        for row in session.query(EventInstance.start_time)
        .filter_by(event_id=event_id)
        .order_by(EventInstance.start_time)
    ]


def _weekly_yoga(**overrides):
    fields = {
        "name": "Morning yoga",
        "is_recurring": True,
        "recurrence_rule": "FREQ=WEEKLY;BYDAY=MO",
        "start_date": datetime(2025, 1, 6, 9, 0),
        "end_date": None,
    }
    fields.update(overrides)
    return event_service.create_event(now=CREATED_AT, **fields)


def test_one_off_event_gets_a_single_instance(db_session):
    event = event_service.create_event(
        now=CREATED_AT,
        name="Concert",
        start_date=datetime(2025, 1, 10, 18, 0),
        duration_minutes=120,
    )

    instances = db_session.query(EventInstance).filter_by(event_id=event.id).all()
    assert len(instances) == 1
    assert instances[0].start_time == datetime(2025, 1, 10, 18, 0)
    assert instances[0].end_time == datetime(2025, 1, 10, 20, 0)
    assert instances[0].status == "Scheduled"
    assert event.end_date == event.start_date


def test_bounded_event_is_expanded_over_its_whole_range(db_session):
    event = _weekly_yoga(end_date=datetime(2025, 1, 20, 9, 0))

    assert _starts(db_session, event.id) == [
        datetime(2025, 1, 6, 9, 0),
        datetime(2025, 1, 13, 9, 0),
        datetime(2025, 1, 20, 9, 0),
    ]


def test_materialize_is_idempotent(db_session):
    event = _weekly_yoga(end_date=datetime(2025, 3, 31, 9, 0))
    before = _starts(db_session, event.id)

    assert event_instance_service.materialize_event(event, now=CREATED_AT) == 0
    db_session.commit()
    assert event_instance_service.materialize_event(event, now=CREATED_AT) == 0

    assert _starts(db_session, event.id) == before
    assert len(before) == 13


def test_indefinite_event_keeps_a_rolling_buffer(db_session):
    event = _weekly_yoga()

    # Created on Jan 1: Mondays up to Apr 1
    assert len(_starts(db_session, event.id)) == 13
    assert max(_starts(db_session, event.id)) == datetime(2025, 3, 31, 9, 0)

    # More than a month of instances still ahead: nothing to do
    summary = event_instance_service.materialize_indefinite_events(now=datetime(2025, 1, 15, 1, 0))
    assert summary.processed == 1
    assert summary.created == 0

    # Less than a month left: top up to three months ahead
    summary = event_instance_service.materialize_indefinite_events(now=datetime(2025, 3, 15, 1, 0))
    assert summary.created == 10
    assert summary.failed == 0

    starts = _starts(db_session, event.id)
    assert len(starts) == len(set(starts)) == 23
    assert max(starts) == datetime(2025, 6, 9, 9, 0)


def test_daily_pass_skips_bounded_and_one_off_events(db_session):
    _weekly_yoga(end_date=datetime(2025, 1, 20, 9, 0))
    event_service.create_event(now=CREATED_AT, name="Concert", start_date=datetime(2025, 1, 10, 18, 0))

    summary = event_instance_service.materialize_indefinite_events(now=datetime(2025, 6, 1))

    assert summary.processed == 0
    assert summary.created == 0


def test_rule_change_replaces_only_future_instances(db_session):
    event = _weekly_yoga(end_date=datetime(2025, 1, 20, 9, 0))
    past, first_future, second_future = (
        db_session.query(EventInstance).filter_by(event_id=event.id).order_by(EventInstance.start_time).all()
    )
    resident = make_resident(db_session, "Rina", "Cohen")
    db_session.add(EventParticipation(instance_id=past.id, resident_id=resident.id, status="Attended"))
    db_session.commit()
    past_id = past.id
    future_ids = {first_future.id, second_future.id}

    event_service.update_event(event.id, now=datetime(2025, 1, 10, 12, 0), recurrence_rule="FREQ=WEEKLY;BYDAY=TU")

    instances = db_session.query(EventInstance).filter_by(event_id=event.id).order_by(EventInstance.start_time).all()
    assert [i.start_time for i in instances] == [
        datetime(2025, 1, 6, 9, 0),
        datetime(2025, 1, 14, 9, 0),
    ]
    assert instances[0].id == past_id
    assert not future_ids & {i.id for i in instances}
    assert db_session.query(EventParticipation).filter_by(instance_id=past_id).count() == 1


def test_reconcile_summary_counts_pruned_and_created(db_session):
    event = _weekly_yoga(end_date=datetime(2025, 1, 20, 9, 0))
    event.recurrence_rule = "FREQ=WEEKLY;BYDAY=MO,TH"
    db_session.flush()

    summary = event_instance_service.reconcile_event(event, now=datetime(2025, 1, 10, 12, 0))
    db_session.commit()

    assert summary.pruned == 2
    # Jan 13, 16, 20
    assert summary.created == 3


def test_edit_that_keeps_schedule_does_not_touch_instances(db_session):
    event = _weekly_yoga(end_date=datetime(2025, 1, 20, 9, 0))
    ids_before = {i.id for i in db_session.query(EventInstance).filter_by(event_id=event.id)}

    event_service.update_event(event.id, now=datetime(2025, 1, 10), name="Gentle yoga", location="Hall B")

    ids_after = {i.id for i in db_session.query(EventInstance).filter_by(event_id=event.id)}
    assert ids_after == ids_before


def test_failing_event_does_not_stop_the_daily_pass(db_session, monkeypatch):
    broken = _weekly_yoga(name="Broken")
    healthy = _weekly_yoga(name="Healthy", start_date=datetime(2025, 1, 7, 9, 0), recurrence_rule="FREQ=WEEKLY;BYDAY=TU")
    broken_id, healthy_id = broken.id, healthy.id

    real_materialize = event_instance_service.materialize_event

    def flaky_materialize(event, **kwargs):
        if event.id == broken_id:
            raise RuntimeError("simulated database failure")
        return real_materialize(event, **kwargs)

    monkeypatch.setattr(event_instance_service, "materialize_event", flaky_materialize)

    summary = event_instance_service.materialize_indefinite_events(now=datetime(2025, 3, 15, 1, 0))

    assert summary.processed == 2
    assert summary.failed_event_ids == [broken_id]
    assert summary.created > 0
    assert max(_starts(db_session, healthy_id)) > datetime(2025, 4, 1)
    assert max(_starts(db_session, broken_id)) == datetime(2025, 3, 31, 9, 0)


def test_delete_event_removes_instances_and_participations(db_session):
    event = _weekly_yoga(end_date=datetime(2025, 1, 20, 9, 0))
    instance = db_session.query(EventInstance).filter_by(event_id=event.id).first()
    resident = make_resident(db_session, "Avi", "Levi")
    db_session.add(EventParticipation(instance_id=instance.id, resident_id=resident.id))
    db_session.commit()
    event_id = event.id

    event_service.delete_event(event_id)

    assert db_session.query(EventInstance).filter_by(event_id=event_id).count() == 0
    assert db_session.query(EventParticipation).count() == 0


def test_in_progress_occurrence_is_kept_and_not_regenerated(db_session):
    event = _weekly_yoga(end_date=datetime(2025, 1, 20, 9, 0), duration_minutes=120)
    in_progress = (
        db_session.query(EventInstance)
        .filter_by(event_id=event.id, start_time=datetime(2025, 1, 13, 9, 0))
        .one()
    )
    in_progress_id = in_progress.id

    # 10:00 on Jan 13: the 09:00-11:00 class is under way
    event_service.update_event(
        event.id,
        now=datetime(2025, 1, 13, 10, 0),
        start_date=datetime(2025, 1, 6, 9, 30),
        end_date=datetime(2025, 1, 27, 9, 30),
    )

    assert _starts(db_session, event.id) == [
        datetime(2025, 1, 6, 9, 0),
        datetime(2025, 1, 13, 9, 0),
        datetime(2025, 1, 20, 9, 30),
        datetime(2025, 1, 27, 9, 30),
    ]
    assert db_session.get(EventInstance, in_progress_id) is not None


def test_non_advancing_rule_materializes_a_single_noted_instance(db_session):
    event = _weekly_yoga(recurrence_rule="FREQ=DAILY;INTERVAL=0")

    instances = db_session.query(EventInstance).filter_by(event_id=event.id).all()
    assert [i.start_time for i in instances] == [datetime(2025, 1, 6, 9, 0)]
    assert instances[0].notes == "Could not parse recurrence rule."
