from fastapi import APIRouter, Request

from student_records.config.status_rules import describe_rules
from student_records.db.models import Faculty, Gender
from student_records.utils.responses import ResponseBuilder

reference_router = APIRouter()


@reference_router.get("/statuses", summary="Student statuses and allowed transitions")
async def get_statuses(request: Request):
    return ResponseBuilder.success(
        request=request,
        data=describe_rules(),
        message="Status rules retrieved",
    )


@reference_router.get("/faculties", summary="Faculties a student can belong to")
async def get_faculties(request: Request):
    return ResponseBuilder.success(
        request=request,
        data=[faculty.value for faculty in Faculty],
        message="Faculties retrieved",
    )


@reference_router.get("/genders", summary="Accepted gender values")
async def get_genders(request: Request):
    return ResponseBuilder.success(
        request=request,
        data=[gender.value for gender in Gender],
        message="Genders retrieved",
    )
