"""SQLAlchemy implementation of the storage ports.

Repositories only flush; the unit of work commits or rolls back. Derived
counts (active enrollments per user / per course) are read with COUNT
subqueries on every load and are never stored.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import CourseORM, EnrollmentORM, UserORM
from ..application.dto import CourseQuery, EnrollmentQuery
from ..application.ports import ICourseRepository, IEnrollmentRepository, IUnitOfWork, IUserRepository
from ..domain.entities import Course, CourseSnapshot, Enrollment, User
from ..domain.enums import CourseStatus, EnrollmentStatus, UserRole
from ..domain.exceptions import ConflictError

ACTIVE = EnrollmentStatus.ACTIVE.value
CANCELLED = EnrollmentStatus.CANCELLED.value

_active_enrollments_of_user = (
    select(func.count(EnrollmentORM.id))
    .where(EnrollmentORM.user_id == UserORM.id, EnrollmentORM.status == ACTIVE)
    .correlate(UserORM)
    .scalar_subquery()
)

_active_enrollments_of_course = (
    select(func.count(EnrollmentORM.id))
    .where(EnrollmentORM.course_id == CourseORM.id, EnrollmentORM.status == ACTIVE)
    .correlate(CourseORM)
    .scalar_subquery()
)


def user_to_domain(u: UserORM, active_count: int = 0) -> User:
    return User(id=u.id, email=u.email, role=u.role, active_enrollment_count=active_count or 0)


def course_to_domain(c: CourseORM, active_count: int = 0) -> Course:
    return Course(id=c.id, title=c.title, description=c.description, status=c.status,
                  enrollment_count=active_count or 0)


def enrollment_to_domain(e: EnrollmentORM, title: str | None = None, status: str | None = None) -> Enrollment:
    snapshot = CourseSnapshot(id=e.course_id, title=title, status=status) if title is not None else None
    return Enrollment(id=e.id, user_id=e.user_id, course_id=e.course_id, status=e.status, course=snapshot)


class UserRepository(IUserRepository):
    def __init__(self, db: Session): self.db = db

    def _load(self, *criteria, for_update: bool = False) -> User | None:
        stmt = select(UserORM, _active_enrollments_of_user).where(*criteria)
        if for_update:
            stmt = stmt.with_for_update(of=UserORM)
        row = self.db.execute(stmt).first()
        return user_to_domain(row[0], row[1]) if row else None

    def get(self, user_id: int, for_update: bool = False) -> User | None:
        return self._load(UserORM.id == user_id, for_update=for_update)

    def get_by_email(self, email: str) -> User | None:
        return self._load(UserORM.email == email)

    def get_password_hash(self, user_id: int) -> str | None:
        return self.db.scalar(select(UserORM.password_hash).where(UserORM.id == user_id))

    def get_credentials(self, email: str) -> tuple[User, str] | None:
        row = self.db.execute(
            select(UserORM, _active_enrollments_of_user).where(UserORM.email == email)
        ).first()
        if not row:
            return None
        return user_to_domain(row[0], row[1]), row[0].password_hash

    def create(self, user: User, password_hash: str) -> User:
        row = UserORM(email=user.email, password_hash=password_hash, role=user.role.value)
        self.db.add(row)
        try:
            self.db.flush()
        except IntegrityError:
            raise ConflictError.duplicate_email(user.email) from None
        return user_to_domain(row)

    def update(self, user: User) -> User:
        row = self.db.get(UserORM, user.id)
        row.email = user.email
        row.role = user.role.value
        try:
            self.db.flush()
        except IntegrityError:
            raise ConflictError.duplicate_email(user.email) from None
        return user

    def set_password_hash(self, user_id: int, password_hash: str) -> None:
        self.db.execute(update(UserORM).where(UserORM.id == user_id).values(password_hash=password_hash))

    def delete(self, user_id: int) -> None:
        self.db.execute(delete(UserORM).where(UserORM.id == user_id))

    def email_exists(self, email: str, exclude_user_id: int | None = None) -> bool:
        stmt = select(UserORM.id).where(UserORM.email == email)
        if exclude_user_id is not None:
            stmt = stmt.where(UserORM.id != exclude_user_id)
        return self.db.execute(stmt).first() is not None

    def list(self, offset: int, limit: int) -> list[User]:
        rows = self.db.execute(
            select(UserORM, _active_enrollments_of_user).order_by(UserORM.id).offset(offset).limit(limit)
        ).all()
        return [user_to_domain(u, n) for u, n in rows]

    def count(self) -> int:
        return self.db.scalar(select(func.count(UserORM.id)))

    def count_by_role(self) -> dict[UserRole, int]:
        rows = self.db.execute(select(UserORM.role, func.count(UserORM.id)).group_by(UserORM.role)).all()
        return {UserRole(role): n for role, n in rows}


class CourseRepository(ICourseRepository):
    def __init__(self, db: Session): self.db = db

    @staticmethod
    def _filtered(stmt, query: CourseQuery | None):
        if query is None:
            return stmt
        if query.status is not None:
            stmt = stmt.where(CourseORM.status == CourseStatus.parse(query.status, "status").value)
        if query.enrolled_for_user_id is not None:
            enrolled = select(EnrollmentORM.course_id).where(
                EnrollmentORM.user_id == query.enrolled_for_user_id, EnrollmentORM.status == ACTIVE
            )
            stmt = stmt.where(CourseORM.id.in_(enrolled))
        return stmt

    def get(self, course_id: int, for_update: bool = False) -> Course | None:
        stmt = select(CourseORM, _active_enrollments_of_course).where(CourseORM.id == course_id)
        if for_update:
            stmt = stmt.with_for_update(of=CourseORM)
        row = self.db.execute(stmt).first()
        return course_to_domain(row[0], row[1]) if row else None

    def list(self, query: CourseQuery) -> list[Course]:
        stmt = self._filtered(select(CourseORM, _active_enrollments_of_course), query)
        rows = self.db.execute(stmt.order_by(CourseORM.id).offset(query.offset).limit(query.limit)).all()
        return [course_to_domain(c, n) for c, n in rows]

    def count(self, query: CourseQuery | None = None) -> int:
        return self.db.scalar(self._filtered(select(func.count(CourseORM.id)), query))

    def create(self, course: Course) -> Course:
        row = CourseORM(title=course.title, description=course.description, status=course.status.value)
        self.db.add(row)
        self.db.flush()
        return course_to_domain(row)

    def update(self, course: Course) -> Course:
        row = self.db.get(CourseORM, course.id)
        row.title = course.title
        row.description = course.description
        row.status = course.status.value
        self.db.flush()
        return course

    def delete(self, course_id: int) -> None:
        self.db.execute(delete(CourseORM).where(CourseORM.id == course_id))

    def count_by_status(self) -> dict[CourseStatus, int]:
        rows = self.db.execute(select(CourseORM.status, func.count(CourseORM.id)).group_by(CourseORM.status)).all()
        return {CourseStatus(status): n for status, n in rows}


class EnrollmentRepository(IEnrollmentRepository):
    def __init__(self, db: Session): self.db = db

    @staticmethod
    def _select():
        # курс мог быть удалён: отменённые записи остаются без снимка курса
        return select(EnrollmentORM, CourseORM.title, CourseORM.status).outerjoin(
            CourseORM, CourseORM.id == EnrollmentORM.course_id
        )

    @staticmethod
    def _filtered(stmt, query: EnrollmentQuery | None):
        if query is None:
            return stmt
        if query.user_id is not None:
            stmt = stmt.where(EnrollmentORM.user_id == query.user_id)
        if query.course_id is not None:
            stmt = stmt.where(EnrollmentORM.course_id == query.course_id)
        if query.status is not None:
            stmt = stmt.where(EnrollmentORM.status == EnrollmentStatus.parse(query.status, "status").value)
        return stmt

    def _count(self, *criteria) -> int:
        return self.db.scalar(select(func.count(EnrollmentORM.id)).where(*criteria))

    def find_active(self, user_id: int, course_id: int) -> Enrollment | None:
        row = self.db.execute(self._select().where(
            EnrollmentORM.user_id == user_id,
            EnrollmentORM.course_id == course_id,
            EnrollmentORM.status == ACTIVE,
        )).first()
        return enrollment_to_domain(*row) if row else None

    def add(self, enrollment: Enrollment) -> Enrollment:
        row = EnrollmentORM(user_id=enrollment.user_id, course_id=enrollment.course_id,
                            status=enrollment.status.value)
        self.db.add(row)
        try:
            self.db.flush()
        except IntegrityError:
            # параллельная запись успела раньше: сработал частичный уникальный индекс
            raise ConflictError.duplicate_enrollment(enrollment.user_id, enrollment.course_id) from None
        return replace(enrollment, id=row.id)

    def save_status(self, enrollment: Enrollment) -> Enrollment:
        result = self.db.execute(
            update(EnrollmentORM)
            .where(EnrollmentORM.id == enrollment.id, EnrollmentORM.status == ACTIVE)
            .values(status=enrollment.status.value)
        )
        if result.rowcount == 0:
            raise ConflictError.invalid_state_transition(
                "enrollment", ACTIVE, enrollment.status.value, "enrollment is no longer active")
        return enrollment

    def list(self, query: EnrollmentQuery) -> list[Enrollment]:
        stmt = self._filtered(self._select(), query).order_by(EnrollmentORM.id)
        if query.offset is not None:
            stmt = stmt.offset(query.offset).limit(query.limit)
        return [enrollment_to_domain(*row) for row in self.db.execute(stmt).all()]

    def count(self, query: EnrollmentQuery | None = None) -> int:
        return self.db.scalar(self._filtered(select(func.count(EnrollmentORM.id)), query))

    def count_by_status(self) -> dict[EnrollmentStatus, int]:
        rows = self.db.execute(
            select(EnrollmentORM.status, func.count(EnrollmentORM.id)).group_by(EnrollmentORM.status)
        ).all()
        return {EnrollmentStatus(status): n for status, n in rows}

    def count_active_for_course(self, course_id: int) -> int:
        return self._count(EnrollmentORM.course_id == course_id, EnrollmentORM.status == ACTIVE)

    def count_active_for_user(self, user_id: int) -> int:
        return self._count(EnrollmentORM.user_id == user_id, EnrollmentORM.status == ACTIVE)

    def active_user_ids_for_course(self, course_id: int) -> list[int]:
        return list(self.db.scalars(
            select(EnrollmentORM.user_id)
            .where(EnrollmentORM.course_id == course_id, EnrollmentORM.status == ACTIVE)
            .order_by(EnrollmentORM.user_id)
        ))

    def _cancel_active(self, *criteria) -> int:
        result = self.db.execute(
            update(EnrollmentORM)
            .where(*criteria, EnrollmentORM.status == ACTIVE)
            .values(status=CANCELLED)
        )
        return result.rowcount

    def cancel_all_for_course(self, course_id: int) -> int:
        return self._cancel_active(EnrollmentORM.course_id == course_id)

    def cancel_all_for_user(self, user_id: int) -> int:
        return self._cancel_active(EnrollmentORM.user_id == user_id)

    def delete_all_for_course(self, course_id: int) -> int:
        result = self.db.execute(
            delete(EnrollmentORM)
            .where(EnrollmentORM.course_id == course_id)
        )
        return result.rowcount


class SqlAlchemyUnitOfWork(IUnitOfWork):
    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.courses = CourseRepository(db)
        self.enrollments = EnrollmentRepository(db)

    @contextmanager
    def transaction(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
