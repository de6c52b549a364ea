"""People endpoints."""
from fastapi import APIRouter, Depends
from sessionscope.api.deps import get_people_service
from sessionscope.api.schemas.people import PersonCreate, PersonList, PersonRead
from sessionscope.services.people_service import PeopleService

router = APIRouter(prefix="/people", tags=["people"])


@router.get("", response_model=PersonList)
def list_people(service: PeopleService = Depends(get_people_service)) -> PersonList:
    return service.list_people()


@router.post("", response_model=PersonRead, status_code=201)
def create_person(
    payload: PersonCreate, service: PeopleService = Depends(get_people_service),
) -> PersonRead:
    return service.create_person(payload)


@router.get("/{person_id}", response_model=PersonRead)
def get_person(person_id: int, service: PeopleService = Depends(get_people_service)) -> PersonRead:
    return service.get_person(person_id)
