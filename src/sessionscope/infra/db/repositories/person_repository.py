"""Repository for Person records. No business logic; caller owns the transaction."""
from __future__ import annotations
from sqlalchemy import func
from sqlmodel import Session, select
from sessionscope.models import Person


class PersonRepository:
    def __init__(self, session: Session) -> None:
        self._s = session

    def get_by_id(self, person_id: int) -> Person | None:
        return self._s.get(Person, person_id)

    def list_all(self) -> list[Person]:
        return list(self._s.exec(select(Person).order_by(Person.id)).all())

    def count(self) -> int:
        return self._s.exec(select(func.count()).select_from(Person)).one()

    def create(
        self, *, full_name: str, job_title: str, year_born: int, person_id: int | None = None
    ) -> Person:
        person = Person(id=person_id, full_name=full_name, job_title=job_title, year_born=year_born)
        self._s.add(person)
        self._s.flush()
        return person
