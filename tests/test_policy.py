import pytest

from models.enums import UserRole
from services.exceptions import AccessDeniedError
from services.policy import POLICY, Actor, Operation, Resource, authorize
from tests.conftest import assign, make_subject, make_user


def actor_of(user) -> Actor:
    return Actor(id=user.id, username=user.username, role=UserRole(user.role))


class TestPolicyTable:

    def test_admin_only_subject_operations(self, db_session):
        """Scenario: subject management is limited to ADMIN and SUPER_ADMIN."""
        admin = actor_of(make_user(db_session, "admin", UserRole.ADMIN))
        root = actor_of(make_user(db_session, "root", UserRole.SUPER_ADMIN))
        teacher = actor_of(make_user(db_session, "t1", UserRole.TEACHER))
        student = actor_of(make_user(db_session, "s1", UserRole.STUDENT))

        for operation in (
            Operation.CREATE,
            Operation.LIST_ALL,
            Operation.ASSIGN_TEACHER,
            Operation.UNASSIGN_TEACHER,
            Operation.ENROLL_STUDENT,
            Operation.ENROLL_STUDENTS,
            Operation.REMOVE_STUDENT,
        ):
            authorize(admin, Resource.SUBJECTS, operation)
            authorize(root, Resource.SUBJECTS, operation)
            for denied in (teacher, student):
                with pytest.raises(AccessDeniedError) as exc_info:
                    authorize(denied, Resource.SUBJECTS, operation)
                assert exc_info.value.message == "Access denied"

    def test_toggle_requires_assignment_for_teacher(self, db_session):
        """Scenario: a TEACHER may toggle only subjects they are assigned to."""
        teacher_user = make_user(db_session, "t1", UserRole.TEACHER)
        mine = make_subject(db_session, "CS101")
        theirs = make_subject(db_session, "CS102")
        assign(db_session, teacher_user, mine)
        teacher = actor_of(teacher_user)

        authorize(teacher, Resource.SUBJECTS, Operation.TOGGLE_ATTENDANCE, db=db_session, subject_id=mine.id)
        with pytest.raises(AccessDeniedError):
            authorize(teacher, Resource.SUBJECTS, Operation.TOGGLE_ATTENDANCE, db=db_session, subject_id=theirs.id)

    def test_student_is_never_an_assigned_teacher(self, db_session):
        student = actor_of(make_user(db_session, "s1", UserRole.STUDENT))
        subject = make_subject(db_session, "CS101")
        for operation in (Operation.UPDATE, Operation.DELETE, Operation.BULK_CREATE):
            with pytest.raises(AccessDeniedError):
                authorize(student, Resource.ATTENDANCE, operation, db=db_session, subject_id=subject.id)

    def test_self_mark_requires_matching_identity(self):
        student = Actor(id=7, username="s", role=UserRole.STUDENT)
        authorize(student, Resource.ATTENDANCE, Operation.SELF_MARK, student_id=7)
        with pytest.raises(AccessDeniedError) as exc_info:
            authorize(student, Resource.ATTENDANCE, Operation.SELF_MARK, student_id=8)
        assert exc_info.value.message == "You can only mark your own attendance"

    def test_only_super_admin_manages_admin_accounts(self):
        admin = Actor(id=1, username="admin", role=UserRole.ADMIN)
        root = Actor(id=2, username="root", role=UserRole.SUPER_ADMIN)

        authorize(admin, Resource.USERS, Operation.CREATE, target_role=UserRole.TEACHER)
        authorize(root, Resource.USERS, Operation.DELETE, target_role=UserRole.ADMIN)
        for target in (UserRole.ADMIN, UserRole.SUPER_ADMIN):
            with pytest.raises(AccessDeniedError):
                authorize(admin, Resource.USERS, Operation.UPDATE, target_role=target)

    def test_unregistered_pair_is_denied(self, monkeypatch):
        root = Actor(id=1, username="root", role=UserRole.SUPER_ADMIN)
        monkeypatch.delitem(POLICY, (Resource.SUBJECTS, Operation.CREATE))
        with pytest.raises(AccessDeniedError):
            authorize(root, Resource.SUBJECTS, Operation.CREATE)

    def test_self_mark_requires_student_role(self):
        former_student = Actor(id=7, username="s", role=UserRole.TEACHER)
        with pytest.raises(AccessDeniedError):
            authorize(former_student, Resource.ATTENDANCE, Operation.SELF_MARK, student_id=7)
