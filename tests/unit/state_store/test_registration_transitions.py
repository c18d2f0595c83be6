"""Unit tests for registration transitions in StateStore."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from examhub.state_store import (
    ExamResult,
    Registration,
    RegistrationNotFoundError,
    RegistrationStatus,
    StateStore,
    TransitionRejectedError,
)

FINALIZED_AT = datetime(2026, 6, 20, 10, 0)
THREADS = 8


@pytest.fixture
def registrations(store: StateStore, campus) -> list[Registration]:
    """Register every enrolled student for the exam."""
    return [store.create_registration(s.id, campus.exam.id) for s in campus.students]


def _status(store: StateStore, registration_id: int) -> RegistrationStatus:
    return store.get_registration(registration_id).registration_status


def _published(store: StateStore, campus, registration: Registration, result: ExamResult) -> None:
    store.set_result(registration.id, result)
    store.publish_entered(campus.exam.id)


@pytest.mark.unit
class TestSetResult:
    """Tests for set_result."""

    def test_not_entered_promoted_to_entered(self, store: StateStore, registrations) -> None:
        """Writing a result on not_entered promotes to entered."""
        updated = store.set_result(registrations[0].id, ExamResult.GRADE_27)

        assert updated.registration_status is RegistrationStatus.ENTERED
        assert updated.exam_result is ExamResult.GRADE_27
        stored = store.get_registration(registrations[0].id)
        assert stored.status == "entered"
        assert stored.result == "27"

    def test_entered_overwrite_stays_entered(self, store: StateStore, registrations) -> None:
        store.set_result(registrations[0].id, ExamResult.GRADE_27)
        store.set_result(registrations[0].id, ExamResult.FAILED)

        stored = store.get_registration(registrations[0].id)
        assert stored.registration_status is RegistrationStatus.ENTERED
        assert stored.exam_result is ExamResult.FAILED

    def test_unknown_registration(self, store: StateStore) -> None:
        with pytest.raises(RegistrationNotFoundError):
            store.set_result(999, ExamResult.GRADE_18)

    def test_published_rejected_without_mutation(
        self, store: StateStore, campus, registrations
    ) -> None:
        """Published rows are not editable and stay unchanged."""
        _published(store, campus, registrations[0], ExamResult.GRADE_25)

        with pytest.raises(TransitionRejectedError) as exc_info:
            store.set_result(registrations[0].id, ExamResult.GRADE_30)

        assert exc_info.value.status is RegistrationStatus.PUBLISHED
        stored = store.get_registration(registrations[0].id)
        assert stored.registration_status is RegistrationStatus.PUBLISHED
        assert stored.exam_result is ExamResult.GRADE_25

    def test_declined_rejected_without_mutation(
        self, store: StateStore, campus, registrations
    ) -> None:
        _published(store, campus, registrations[0], ExamResult.GRADE_25)
        store.decline_result(campus.students[0].id, campus.exam.id)

        with pytest.raises(TransitionRejectedError) as exc_info:
            store.set_result(registrations[0].id, ExamResult.GRADE_30)

        assert exc_info.value.status is RegistrationStatus.DECLINED
        assert store.get_registration(registrations[0].id).exam_result is ExamResult.GRADE_25

    def test_recorded_rejected_without_mutation(
        self, store: StateStore, campus, registrations
    ) -> None:
        _published(store, campus, registrations[0], ExamResult.GRADE_25)
        store.finalize_exam(campus.exam.id, FINALIZED_AT)

        with pytest.raises(TransitionRejectedError) as exc_info:
            store.set_result(registrations[0].id, ExamResult.GRADE_30)

        assert exc_info.value.status is RegistrationStatus.RECORDED
        stored = store.get_registration(registrations[0].id)
        assert stored.exam_result is ExamResult.GRADE_25
        assert stored.report_id is not None


@pytest.mark.unit
class TestSetResults:
    """Tests for set_results (bulk edit)."""

    def test_applies_all_updates(self, store: StateStore, registrations) -> None:
        updated = store.set_results(
            [(registrations[0].id, ExamResult.GRADE_18), (registrations[1].id, ExamResult.ABSENT)]
        )

        assert [r.exam_result for r in updated] == [ExamResult.GRADE_18, ExamResult.ABSENT]
        assert _status(store, registrations[1].id) is RegistrationStatus.ENTERED

    def test_later_failure_rolls_back_earlier_items(
        self, store: StateStore, campus, registrations
    ) -> None:
        """A rejected item undoes the whole batch."""
        _published(store, campus, registrations[1], ExamResult.GRADE_24)

        with pytest.raises(TransitionRejectedError):
            store.set_results(
                [
                    (registrations[0].id, ExamResult.GRADE_30),
                    (registrations[1].id, ExamResult.GRADE_30),
                ]
            )

        first = store.get_registration(registrations[0].id)
        assert first.registration_status is RegistrationStatus.NOT_ENTERED
        assert first.exam_result is ExamResult.EMPTY

    def test_missing_item_rolls_back(self, store: StateStore, registrations) -> None:
        with pytest.raises(RegistrationNotFoundError):
            store.set_results([(registrations[0].id, ExamResult.GRADE_30), (999, ExamResult.FAILED)])

        assert _status(store, registrations[0].id) is RegistrationStatus.NOT_ENTERED


@pytest.mark.unit
class TestPublishEntered:
    """Tests for publish_entered."""

    def test_publishes_only_entered_rows(self, store: StateStore, campus, registrations) -> None:
        """One entered, one not_entered: exactly one row published."""
        store.set_result(registrations[0].id, ExamResult.GRADE_28)

        assert store.publish_entered(campus.exam.id) == 1

        assert _status(store, registrations[0].id) is RegistrationStatus.PUBLISHED
        untouched = store.get_registration(registrations[1].id)
        assert untouched.registration_status is RegistrationStatus.NOT_ENTERED
        assert untouched.exam_result is ExamResult.EMPTY

    def test_second_publish_affects_nothing(
        self, store: StateStore, campus, registrations
    ) -> None:
        """N rows, then 0 rows."""
        for registration in registrations:
            store.set_result(registration.id, ExamResult.GRADE_20)

        assert store.publish_entered(campus.exam.id) == 3
        assert store.publish_entered(campus.exam.id) == 0

    def test_other_exam_untouched(self, store: StateStore, campus, registrations) -> None:
        other = store.create_exam(campus.course.id, datetime(2026, 7, 1, 9, 0))
        store.set_result(registrations[0].id, ExamResult.GRADE_20)

        assert store.publish_entered(other.id) == 0
        assert _status(store, registrations[0].id) is RegistrationStatus.ENTERED


@pytest.mark.unit
class TestDeclineResult:
    """Tests for decline_result."""

    def test_decline_published_passing(self, store: StateStore, campus, registrations) -> None:
        _published(store, campus, registrations[0], ExamResult.GRADE_18)

        declined = store.decline_result(campus.students[0].id, campus.exam.id)

        assert declined.registration_status is RegistrationStatus.DECLINED
        assert _status(store, registrations[0].id) is RegistrationStatus.DECLINED

    @pytest.mark.parametrize(
        "result", [ExamResult.FAILED, ExamResult.ABSENT, ExamResult.POSTPONED]
    )
    def test_decline_non_passing_rejected(
        self, store: StateStore, campus, registrations, result: ExamResult
    ) -> None:
        """Below the minimum passing grade cannot be declined."""
        _published(store, campus, registrations[0], result)

        with pytest.raises(TransitionRejectedError) as exc_info:
            store.decline_result(campus.students[0].id, campus.exam.id)

        assert exc_info.value.result is result
        assert _status(store, registrations[0].id) is RegistrationStatus.PUBLISHED

    def test_decline_entered_rejected(self, store: StateStore, campus, registrations) -> None:
        store.set_result(registrations[0].id, ExamResult.GRADE_30)

        with pytest.raises(TransitionRejectedError) as exc_info:
            store.decline_result(campus.students[0].id, campus.exam.id)

        assert exc_info.value.status is RegistrationStatus.ENTERED

    def test_decline_twice_rejected(self, store: StateStore, campus, registrations) -> None:
        _published(store, campus, registrations[0], ExamResult.GRADE_30)
        store.decline_result(campus.students[0].id, campus.exam.id)

        with pytest.raises(TransitionRejectedError):
            store.decline_result(campus.students[0].id, campus.exam.id)

    def test_decline_unregistered(self, store: StateStore, campus) -> None:
        with pytest.raises(RegistrationNotFoundError):
            store.decline_result(campus.outsider.id, campus.exam.id)


@pytest.mark.unit
class TestFinalizeExam:
    """Tests for finalize_exam."""

    def test_finalize_records_and_links(self, store: StateStore, campus, registrations) -> None:
        """Published and declined rows are recorded into one report."""
        store.set_result(registrations[0].id, ExamResult.GRADE_27)
        store.set_result(registrations[1].id, ExamResult.GRADE_24)
        store.publish_entered(campus.exam.id)
        store.decline_result(campus.students[1].id, campus.exam.id)

        outcome = store.finalize_exam(campus.exam.id, FINALIZED_AT)

        assert outcome.recorded == 2
        assert outcome.linked == 2
        assert outcome.report is not None
        kept = store.get_registration(registrations[0].id)
        assert kept.registration_status is RegistrationStatus.RECORDED
        assert kept.exam_result is ExamResult.GRADE_27
        assert kept.report_id == outcome.report.id
        declined = store.get_registration(registrations[1].id)
        assert declined.registration_status is RegistrationStatus.RECORDED
        assert declined.exam_result is ExamResult.POSTPONED
        assert declined.report_id == outcome.report.id

    def test_finalize_skips_editable_rows(self, store: StateStore, campus, registrations) -> None:
        _published(store, campus, registrations[0], ExamResult.GRADE_27)
        store.set_result(registrations[1].id, ExamResult.GRADE_19)

        store.finalize_exam(campus.exam.id, FINALIZED_AT)

        entered = store.get_registration(registrations[1].id)
        assert entered.registration_status is RegistrationStatus.ENTERED
        assert entered.report_id is None
        assert _status(store, registrations[2].id) is RegistrationStatus.NOT_ENTERED

    def test_finalize_nothing_creates_no_report(
        self, store: StateStore, campus, registrations
    ) -> None:
        store.set_result(registrations[0].id, ExamResult.GRADE_27)

        outcome = store.finalize_exam(campus.exam.id, FINALIZED_AT)

        assert outcome.report is None
        assert outcome.recorded == 0
        assert store.list_reports_for_course(campus.course.id, campus.professor.id) == []

    def test_second_finalize_keeps_first_report(
        self, store: StateStore, campus, registrations
    ) -> None:
        """Re-running finalize touches no row of the first report."""
        _published(store, campus, registrations[0], ExamResult.GRADE_27)
        first = store.finalize_exam(campus.exam.id, FINALIZED_AT)

        second = store.finalize_exam(campus.exam.id, FINALIZED_AT)

        assert second.report is None
        sealed = store.list_registrations_for_report(first.report.id)
        assert [r.id for r in sealed] == [registrations[0].id]

    def test_later_finalize_gets_new_report(
        self, store: StateStore, campus, registrations
    ) -> None:
        """Rows published after a finalize go into a new report."""
        _published(store, campus, registrations[0], ExamResult.GRADE_27)
        first = store.finalize_exam(campus.exam.id, FINALIZED_AT)
        _published(store, campus, registrations[1], ExamResult.GRADE_22)

        second = store.finalize_exam(campus.exam.id, datetime(2026, 6, 25, 10, 0))

        assert second.report.id != first.report.id
        assert [r.id for r in store.list_registrations_for_report(first.report.id)] == [
            registrations[0].id
        ]
        assert [r.id for r in store.list_registrations_for_report(second.report.id)] == [
            registrations[1].id
        ]

    def test_report_loads_exam(self, store: StateStore, campus, registrations) -> None:
        _published(store, campus, registrations[0], ExamResult.GRADE_27)
        outcome = store.finalize_exam(campus.exam.id, FINALIZED_AT)

        report = store.get_report(outcome.report.id)

        assert report.exam.course.name == "Algorithms"
        assert report.created_at == FINALIZED_AT


@pytest.mark.unit
class TestInvariants:
    """Row invariants hold after every transition."""

    def test_result_set_whenever_status_past_not_entered(
        self, store: StateStore, campus, registrations
    ) -> None:
        store.set_result(registrations[0].id, ExamResult.GRADE_27)
        store.set_result(registrations[1].id, ExamResult.GRADE_30_LAUDE)
        store.publish_entered(campus.exam.id)
        store.decline_result(campus.students[1].id, campus.exam.id)
        store.finalize_exam(campus.exam.id, FINALIZED_AT)

        for registration in store.list_registrations_for_exam(campus.exam.id):
            if registration.registration_status is not RegistrationStatus.NOT_ENTERED:
                assert registration.exam_result is not ExamResult.EMPTY

    def test_report_iff_recorded(self, store: StateStore, campus, registrations) -> None:
        store.set_result(registrations[0].id, ExamResult.GRADE_27)
        store.set_result(registrations[1].id, ExamResult.GRADE_19)
        store.publish_entered(campus.exam.id)
        store.set_result(registrations[2].id, ExamResult.FAILED)
        store.finalize_exam(campus.exam.id, FINALIZED_AT)

        for registration in store.list_registrations_for_exam(campus.exam.id):
            recorded = registration.registration_status is RegistrationStatus.RECORDED
            assert (registration.report_id is not None) == recorded

    def test_database_rejects_entered_without_result(
        self, store: StateStore, campus, registrations
    ) -> None:
        """CHECK constraint: entered rows need a result."""
        session = store._db.get_session()
        try:
            with pytest.raises(IntegrityError), session.begin():
                row = session.get(Registration, registrations[0].id)
                row.registration_status = RegistrationStatus.ENTERED
        finally:
            session.close()


@pytest.mark.unit
class TestInMemoryThreads:
    """The in-memory store shares one connection between threads."""

    def test_concurrent_finalize_creates_one_report(
        self, store: StateStore, campus, registrations
    ) -> None:
        for registration in registrations:
            store.set_result(registration.id, ExamResult.GRADE_26)
        store.publish_entered(campus.exam.id)

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            outcomes = list(
                pool.map(
                    lambda _: store.finalize_exam(campus.exam.id, FINALIZED_AT), range(THREADS)
                )
            )

        reports = [o.report for o in outcomes if o.report is not None]
        assert len(reports) == 1
        assert sum(o.recorded for o in outcomes) == len(registrations)
        assert len(store.list_registrations_for_report(reports[0].id)) == len(registrations)

    def test_reads_interleaved_with_writes(
        self, store: StateStore, campus, registrations
    ) -> None:
        """Readers never see a half-applied write or a busy connection."""

        def write(registration: Registration) -> None:
            store.set_result(registration.id, ExamResult.GRADE_30)

        def read(_: int) -> int:
            return len(store.list_registrations_for_exam(campus.exam.id))

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            writes = [pool.submit(write, r) for r in registrations]
            counts = list(pool.map(read, range(THREADS * 2)))
            for future in writes:
                future.result()

        assert counts == [len(registrations)] * (THREADS * 2)
        for registration in store.list_registrations_for_exam(campus.exam.id):
            assert registration.registration_status is RegistrationStatus.ENTERED
            assert registration.exam_result is ExamResult.GRADE_30
