"""
Unit tests for the coach merge transaction.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from coachtrack.coaches.merge import CoachMergeService, pick_keeper, plan_field_merge
from coachtrack.db.models import Attendance, Base, Coach, School, UpdateLog
from coachtrack.db.session import commit_step
from coachtrack.errors import ConstraintError, NotFoundError, StoreError, ValidationError


def _games(db_session, coach_id):
    return sorted(
        game_id for (game_id,) in
        db_session.query(Attendance.game_id).filter(Attendance.coach_id == coach_id)
    )


class TestPlanFieldMerge:

    def test_fills_missing_contact_fields(self):
        keeper = SimpleNamespace(first_name="John", email=None, phone="", title="Head Coach")
        loser = SimpleNamespace(first_name="John", email="j@x.edu", phone="555-0100", title="Assistant")
        assert plan_field_merge(keeper, loser) == {"email": "j@x.edu", "phone": "555-0100"}

    def test_replaces_initial_with_full_name(self):
        keeper = SimpleNamespace(first_name="J.", email=None, phone=None, title=None)
        loser = SimpleNamespace(first_name="John", email=None, phone=None, title=None)
        assert plan_field_merge(keeper, loser) == {"first_name": "John"}

    def test_keeps_full_first_name(self):
        keeper = SimpleNamespace(first_name="Jon", email=None, phone=None, title=None)
        loser = SimpleNamespace(first_name="Jonathan", email=None, phone=None, title=None)
        assert plan_field_merge(keeper, loser) == {}

    def test_initial_length_is_configurable(self):
        keeper = SimpleNamespace(first_name="Jon", email=None, phone=None, title=None)
        loser = SimpleNamespace(first_name="Jonathan", email=None, phone=None, title=None)
        assert plan_field_merge(keeper, loser, initial_max_length=3) == {"first_name": "Jonathan"}


class TestCoachMergeService:

    def test_merge_initial_into_full_name(self, db_session, make_school, make_coach, attend):
        school = make_school("Kenyon College")
        keeper = make_coach(school, "J.", "Smith")
        loser = make_coach(school, "John", "Smith", email="jsmith@kenyon.edu")
        attend(keeper, 1, 2, 3)
        attend(loser, 3, 4)
        keep_id, merge_id = keeper.id, loser.id

        result = CoachMergeService(db_session).merge(keep_id, merge_id)

        kept = db_session.get(Coach, keep_id)
        assert kept.first_name == "John"
        assert kept.email == "jsmith@kenyon.edu"
        assert db_session.get(Coach, merge_id) is None
        assert _games(db_session, keep_id) == [1, 2, 3, 4]
        assert _games(db_session, merge_id) == []

        assert result.moved == 1
        assert result.dropped == 1
        assert sorted(result.merged_fields) == ["email", "first_name"]
        assert result.summary == (
            'Merged "John Smith" into "John Smith" '
            "(1 attendance record reassigned, 1 duplicate dropped); added email, first_name"
        )

    def test_merge_writes_audit_row(self, db_session, make_school, make_coach):
        school = make_school("Kenyon College")
        keeper = make_coach(school, "John", "Smith")
        loser = make_coach(school, "John", "Smith")
        keep_id, merge_id = keeper.id, loser.id

        CoachMergeService(db_session).merge(keep_id, merge_id)

        log = db_session.query(UpdateLog).filter(UpdateLog.update_type == "coach_merge").one()
        assert log.success is True
        assert log.details["keeper_id"] == keep_id
        assert log.details["loser_id"] == merge_id

    def test_never_overwrites_keeper_fields(self, db_session, make_school, make_coach):
        school = make_school("Kenyon College")
        keeper = make_coach(school, "John", "Smith", email="keep@kenyon.edu")
        loser = make_coach(school, "John", "Smith", email="other@kenyon.edu", phone="555-0100")

        result = CoachMergeService(db_session).merge(keeper.id, loser.id)

        kept = db_session.get(Coach, keeper.id)
        assert kept.email == "keep@kenyon.edu"
        assert kept.phone == "555-0100"
        assert result.merged_fields == ["phone"]

    def test_second_merge_of_same_pair_is_not_found(self, db_session, make_school, make_coach, attend):
        school = make_school("Kenyon College")
        keeper = make_coach(school, "John", "Smith")
        loser = make_coach(school, "Jon", "Smith", email="jon@kenyon.edu")
        attend(loser, 7)
        keep_id, merge_id = keeper.id, loser.id

        service = CoachMergeService(db_session)
        service.merge(keep_id, merge_id)

        with pytest.raises(NotFoundError) as exc_info:
            service.merge(keep_id, merge_id)
        assert exc_info.value.step == "load"

        kept = db_session.get(Coach, keep_id)
        assert kept.first_name == "John"
        assert kept.email == "jon@kenyon.edu"
        assert _games(db_session, keep_id) == [7]
        assert db_session.query(UpdateLog).count() == 1

    def test_merge_into_itself_rejected(self, db_session, make_school, make_coach):
        coach = make_coach(make_school("Kenyon College"), "John", "Smith")
        with pytest.raises(ValidationError):
            CoachMergeService(db_session).merge(coach.id, coach.id)

    def test_cross_school_merge_rejected(self, db_session, make_school, make_coach):
        a = make_coach(make_school("Kenyon College"), "John", "Smith")
        b = make_coach(make_school("Denison University"), "John", "Smith")
        with pytest.raises(ValidationError):
            CoachMergeService(db_session).merge(a.id, b.id)
        assert db_session.get(Coach, b.id) is not None

    def test_missing_keeper(self, db_session, make_school, make_coach):
        coach = make_coach(make_school("Kenyon College"), "John", "Smith")
        with pytest.raises(NotFoundError):
            CoachMergeService(db_session).merge(9999, coach.id)

    def test_failed_step_keeps_earlier_steps(self, db_session, make_school, make_coach, attend, monkeypatch):
        school = make_school("Kenyon College")
        keeper = make_coach(school, "John", "Smith")
        loser = make_coach(school, "John", "Smith", email="j@kenyon.edu")
        attend(loser, 5)
        keep_id, merge_id = keeper.id, loser.id

        service = CoachMergeService(db_session)

        def locked(*args):
            raise OperationalError("UPDATE attendance", {}, Exception("database is locked"))

        monkeypatch.setattr(service, "_repoint_attendance", locked)

        with pytest.raises(StoreError) as exc_info:
            service.merge(keep_id, merge_id)
        assert exc_info.value.step == "repoint_attendance"
        assert "repoint_attendance" in str(exc_info.value)

        # reconcile_fields had already committed; the loser is still there
        assert db_session.get(Coach, keep_id).email == "j@kenyon.edu"
        assert db_session.get(Coach, merge_id) is not None
        assert _games(db_session, merge_id) == [5]

    def test_load_failure_raises_store_error(self, db_session, make_school, make_coach):
        school = make_school("Kenyon College")
        keeper = make_coach(school, "John", "Smith")
        loser = make_coach(school, "Jon", "Smith")
        keep_id, merge_id = keeper.id, loser.id
        db_session.execute(text("DROP TABLE coaches"))

        with pytest.raises(StoreError) as exc_info:
            CoachMergeService(db_session).merge(keep_id, merge_id)
        assert exc_info.value.step == "load"

    def test_concurrent_merge_of_same_pair(self, tmp_path, monkeypatch):
        db_path = tmp_path / "coachtrack.db"
        engine = create_engine(f"sqlite:///{db_path}")
        Base.metadata.create_all(engine)
        Session = sessionmaker(bind=engine)
        first, second = Session(), Session()

        school = School(school="Kenyon College")
        first.add(school)
        first.commit()
        keeper = Coach(school_id=school.id, first_name="John", last_name="Smith")
        loser = Coach(school_id=school.id, first_name="Jon", last_name="Smith")
        first.add_all([keeper, loser])
        first.commit()
        keep_id, merge_id = keeper.id, loser.id
        first.add(Attendance(game_id=7, coach_id=merge_id))
        first.commit()

        service_a = CoachMergeService(first)
        service_b = CoachMergeService(second)
        repoint = service_a._repoint_attendance

        def merged_elsewhere_first(keep, merge):
            # The other session finishes the whole merge while this one
            # is between loading the pair and deleting the loser
            service_b.merge(keep, merge)
            return repoint(keep, merge)

        monkeypatch.setattr(service_a, "_repoint_attendance", merged_elsewhere_first)

        with pytest.raises(NotFoundError) as exc_info:
            service_a.merge(keep_id, merge_id)
        assert exc_info.value.step == "delete_loser"

        assert _games(first, keep_id) == [7]
        assert first.get(Coach, merge_id) is None
        assert first.query(UpdateLog).count() == 1

        first.close()
        second.close()
        engine.dispose()


class TestCommitStep:

    def test_integrity_error_becomes_constraint_error(self, db_session, make_school, make_coach, attend):
        coach = make_coach(make_school("Kenyon College"), "John", "Smith")
        attend(coach, 1)

        with pytest.raises(ConstraintError) as exc_info:
            with commit_step(db_session, "insert_attendance"):
                db_session.add(Attendance(game_id=1, coach_id=coach.id))
        assert exc_info.value.step == "insert_attendance"
        assert _games(db_session, coach.id) == [1]

    def test_other_errors_propagate(self, db_session):
        with pytest.raises(KeyError):
            with commit_step(db_session, "noop"):
                raise KeyError("boom")


class TestPickKeeper:

    def _coach(self, coach_id, first="John", **contact):
        fields = {"email": None, "phone": None, "title": None, **contact}
        return SimpleNamespace(id=coach_id, first_name=first, **fields)

    def test_more_attendance_wins(self):
        a, b = self._coach(1), self._coach(2)
        assert pick_keeper(a, b, {2: 5, 1: 1}) == (b, a)

    def test_contact_fields_break_ties(self):
        a, b = self._coach(1), self._coach(2, email="j@x.edu")
        assert pick_keeper(a, b, {}) == (b, a)

    def test_longer_first_name_then_lower_id(self):
        a, b = self._coach(1, first="J."), self._coach(2)
        assert pick_keeper(a, b, {}) == (b, a)
        c, d = self._coach(3), self._coach(4)
        assert pick_keeper(d, c, {}) == (c, d)
