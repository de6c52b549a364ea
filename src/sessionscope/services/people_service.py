"""People use-case service.

Methods declare their unit of work with ``@unit_of_work``; instances must be
created through ``UnitOfWorkAwareProxyFactory.create`` so a session is bound
while they run.
"""
from __future__ import annotations
from sessionscope.api.schemas.people import PersonCreate, PersonList, PersonRead
from sessionscope.domain.exceptions import ConflictError, NotFoundError
from sessionscope.infra.db.repositories.person_repository import PersonRepository
from sessionscope.uow import DEFAULT_BACKEND, current_session, unit_of_work


class PeopleService:
    def _repo(self) -> PersonRepository:
        return PersonRepository(current_session(DEFAULT_BACKEND))

    @unit_of_work(read_only=True)
    def list_people(self) -> PersonList:
        repo = self._repo()
        return PersonList(
            items=[PersonRead.model_validate(p) for p in repo.list_all()],
            total=repo.count(),
        )

    @unit_of_work(read_only=True)
    def get_person(self, person_id: int) -> PersonRead:
        person = self._repo().get_by_id(person_id)
        if person is None:
            raise NotFoundError(f"Person {person_id} not found")
        return PersonRead.model_validate(person)

    @unit_of_work()
    def create_person(self, payload: PersonCreate) -> PersonRead:
        repo = self._repo()
        if payload.id is not None and repo.get_by_id(payload.id) is not None:
            raise ConflictError(f"Person {payload.id} already exists")
        person = repo.create(
            person_id=payload.id,
            full_name=payload.full_name,
            job_title=payload.job_title,
            year_born=payload.year_born,
        )
        return PersonRead.model_validate(person)
