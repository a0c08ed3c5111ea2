"""
HTTP routes for the portfolio backend API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from portfolio_api import external_apis
from portfolio_api.auth import require_user
from portfolio_api.config import Settings, get_settings
from portfolio_api.db import ContactFormSubmission, DbClient
from portfolio_api.dependencies import get_db_client
from portfolio_api.external_apis import MissingApiKeyError, UpstreamError, UpstreamNotFound
from portfolio_api.schemas import (
    ContactFormSubmissionItem,
    ContactFormSubmissionPayload,
    ContactFormSubmissionResponse,
    ContactFormSubmissionsResponse,
    ContactFormSubmissionUpdate,
    GitHubProfileResponse,
    RecipesResponse,
    WeatherDataResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SUBMISSION_NOT_FOUND = "Contact form submission with the given ID not found"


def _submission_response(
    submission: ContactFormSubmission,
) -> ContactFormSubmissionResponse:
    return ContactFormSubmissionResponse(
        contact_form_submission_id=submission.id,
        name=submission.name,
        email=submission.email,
        subject=submission.subject,
        message=submission.message,
        submission_timestamp=submission.submission_timestamp,
    )


def _upstream_failure(exc: UpstreamError) -> HTTPException:
    if isinstance(exc, UpstreamNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.get(
    "/contact_form_submissions",
    response_model=ContactFormSubmissionsResponse,
    dependencies=[Depends(require_user)],
)
def list_contact_form_submissions(db: DbClient = Depends(get_db_client)):
    logger.info("Retrieving all contact form submissions")
    submissions = db.list_submissions()
    logger.info(
        "Successfully retrieved %d contact form submissions", len(submissions)
    )
    return ContactFormSubmissionsResponse(
        contact_form_submissions=[
            ContactFormSubmissionItem(**submission.as_dict())
            for submission in submissions
        ]
    )


@router.post(
    "/contact_form_submissions",
    response_model=ContactFormSubmissionResponse,
    status_code=201,
)
def create_contact_form_submission(
    payload: ContactFormSubmissionPayload, db: DbClient = Depends(get_db_client)
):
    """
    Public endpoint behind the portfolio contact form.
    """
    created = db.create_submission(
        payload.name, str(payload.email), payload.subject, payload.message
    )
    saved = db.get_submission(created.id)
    if not saved:
        raise HTTPException(
            status_code=500,
            detail="Failed to retrieve created contact form submission",
        )
    return _submission_response(saved)


@router.get(
    "/contact_form_submissions/{submission_id}",
    response_model=ContactFormSubmissionResponse,
    dependencies=[Depends(require_user)],
)
def get_contact_form_submission(
    submission_id: str, db: DbClient = Depends(get_db_client)
):
    submission = db.get_submission(submission_id)
    if not submission:
        raise HTTPException(status_code=404, detail=SUBMISSION_NOT_FOUND)
    return _submission_response(submission)


@router.patch(
    "/contact_form_submissions/{submission_id}",
    response_model=ContactFormSubmissionResponse,
    dependencies=[Depends(require_user)],
)
def update_contact_form_submission(
    submission_id: str,
    payload: ContactFormSubmissionUpdate,
    db: DbClient = Depends(get_db_client),
):
    fields = payload.model_dump(exclude_none=True)
    if "email" in fields:
        fields["email"] = str(fields["email"])
    updated = db.update_submission(submission_id, fields)
    if not updated:
        raise HTTPException(status_code=404, detail=SUBMISSION_NOT_FOUND)
    return _submission_response(updated)


@router.delete(
    "/contact_form_submissions/{submission_id}",
    status_code=204,
    dependencies=[Depends(require_user)],
)
def delete_contact_form_submission(
    submission_id: str, db: DbClient = Depends(get_db_client)
):
    if not db.delete_submission(submission_id):
        raise HTTPException(status_code=404, detail=SUBMISSION_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/github_profile",
    response_model=GitHubProfileResponse,
    dependencies=[Depends(require_user)],
)
def get_github_profile(
    username: str = Query(..., description="GitHub login to look up"),
    settings: Settings = Depends(get_settings),
):
    if not username.strip():
        raise HTTPException(
            status_code=400, detail="Username must be a non-empty string"
        )
    try:
        profile = external_apis.fetch_github_profile(
            username, settings.github_api_key
        )
    except UpstreamError as exc:
        raise _upstream_failure(exc) from exc
    logger.info("Successfully retrieved GitHub profile for username: %s", username)
    return GitHubProfileResponse(**profile)


@router.get(
    "/weather",
    response_model=WeatherDataResponse,
    dependencies=[Depends(require_user)],
)
def get_weather_data(
    city: str = Query(..., min_length=1),
    settings: Settings = Depends(get_settings),
):
    try:
        data = external_apis.fetch_weather(city, settings.openweathermap_api_key)
    except UpstreamError as exc:
        raise _upstream_failure(exc) from exc
    return WeatherDataResponse(**data)


@router.get(
    "/recipes",
    response_model=RecipesResponse,
    dependencies=[Depends(require_user)],
)
def search_recipes(
    ingredients: str = Query(..., description="Comma separated ingredients"),
    settings: Settings = Depends(get_settings),
):
    if not ingredients.strip():
        raise HTTPException(
            status_code=400,
            detail="Ingredients parameter must be a non-empty string",
        )
    try:
        recipes = external_apis.search_recipes(
            ingredients, settings.spoonacular_api_key
        )
    except MissingApiKeyError as exc:
        raise HTTPException(
            status_code=500, detail="Failed to retrieve recipes from the API"
        ) from exc
    except UpstreamError as exc:
        raise _upstream_failure(exc) from exc
    return RecipesResponse(recipes=recipes)
