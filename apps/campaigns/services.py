from __future__ import annotations

import logging
from typing import Any, Mapping

import requests
from django.conf import settings
from django.db import IntegrityError, transaction

from core.exceptions import ConflictError, ProviderError, ValidationError

from .locations import resolve_cities
from .models import JobCampaign

logger = logging.getLogger(__name__)

LOCATION_PLATFORMS = {
    JobCampaign.PLATFORM_LINKEDIN,
    JobCampaign.PLATFORM_INDEED,
    JobCampaign.PLATFORM_GLASSDOOR,
    JobCampaign.PLATFORM_BAYT,
}
CITY_PLATFORMS = {JobCampaign.PLATFORM_NAUKRI}

DEFAULT_LIMITS = {
    JobCampaign.PLATFORM_NAUKRI: 50,
}
DEFAULT_LIMIT = 10
GLASSDOOR_BASE_URL = "https://www.glassdoor.com"


def campaign_summary(campaign: JobCampaign) -> dict[str, Any]:
    return {
        "id": str(campaign.id),
        "title": campaign.title,
        "platform": campaign.platform,
        "status": campaign.status,
        "keywords": campaign.keywords,
        "created_at": campaign.created_at.isoformat() if campaign.created_at else None,
    }


def get_active_campaign(user) -> JobCampaign | None:
    return JobCampaign.objects.filter(user=user, status__in=JobCampaign.ACTIVE_STATUSES).first()


def _reject(active: JobCampaign) -> ConflictError:
    return ConflictError(
        "You already have an active campaign. Please wait for it to finish before starting a new one.",
        payload={"active_campaign": campaign_summary(active)},
    )


def _parse_limit(value: Any, platform: str) -> int:
    if value in (None, ""):
        return DEFAULT_LIMITS.get(platform, DEFAULT_LIMIT)
    try:
        limit = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("limit must be a whole number") from exc
    if limit <= 0:
        raise ValidationError("limit must be greater than zero")
    return limit


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


def build_scraper_payload(campaign: JobCampaign, params: Mapping[str, Any]) -> dict[str, Any]:
    """Request body expected by the platform's scraper workflow."""
    if campaign.platform == JobCampaign.PLATFORM_NAUKRI:
        return {
            "cities": campaign.city_codes,
            "experience": campaign.experience,
            "freshness": campaign.freshness,
            "keyword": campaign.keywords,
            "maxJobs": campaign.job_limit,
            "email": campaign.user_email,
            "platform": campaign.platform,
            "campaignId": str(campaign.id),
            "citiesConverted": {"input": campaign.cities, "codes": campaign.city_codes},
        }
    if campaign.platform == JobCampaign.PLATFORM_GLASSDOOR:
        return {
            "baseUrl": params.get("baseUrl") or GLASSDOOR_BASE_URL,
            "includeNoSalaryJob": _as_bool(params.get("includeNoSalaryJob", False)),
            "keyword": campaign.keywords,
            "location": campaign.location,
            "maxItems": campaign.job_limit,
            "remoteWorkType": campaign.remote == "remote" or _as_bool(params.get("remoteWorkType", False)),
            "email": campaign.user_email,
            "platform": campaign.platform,
            "campaignId": str(campaign.id),
        }
    return {
        "email": campaign.user_email,
        "keywords": campaign.keywords,
        "limit": campaign.job_limit,
        "location": campaign.location,
        "remote": campaign.remote,
        "sort": campaign.sort,
        "platform": campaign.platform,
        "campaignId": str(campaign.id),
    }


def _campaign_fields(user, platform: str, params: Mapping[str, Any]) -> dict[str, Any]:
    keywords = str(params.get("keywords") or "").strip()
    if not keywords:
        raise ValidationError("Missing required fields: keywords")

    fields: dict[str, Any] = {
        "user": user,
        "user_email": params.get("email") or user.email,
        "title": params.get("title") or f"{platform.title()} - {keywords}",
        "keywords": keywords,
        "platform": platform,
        "job_limit": _parse_limit(params.get("limit"), platform),
        "cv_reference": params.get("cvId") or None,
        "cover_letter_reference": params.get("coverLetterId") or None,
    }

    if platform in CITY_PLATFORMS:
        cities = params.get("cities")
        if isinstance(cities, str):
            cities = [cities]
        cities = [str(city).strip() for city in cities or [] if str(city).strip()]
        if not cities:
            raise ValidationError("Missing required fields: cities (with city names or codes)")
        fields.update(
            cities=cities,
            city_codes=resolve_cities(cities),
            experience=params.get("experience") or "all",
            freshness=params.get("freshness") or "all",
        )
    else:
        location = str(params.get("location") or "").strip()
        if not location:
            raise ValidationError("Missing required fields: location")
        fields.update(
            location=location,
            remote=params.get("remote") or "remote",
            sort=params.get("sort") or "relevant",
        )
    return fields


def request_campaign(user, platform: str, params: Mapping[str, Any]) -> JobCampaign:
    """
    Admit a new campaign for ``user`` and forward it to the scraper.

    Raises ``ConflictError`` carrying the blocking campaign when the user
    already has one pending or processing.
    """
    platform = (platform or "").strip().lower()
    if platform not in LOCATION_PLATFORMS | CITY_PLATFORMS:
        raise ValidationError(f"Invalid platform: {platform or 'none'}")

    active = get_active_campaign(user)
    if active is not None:
        raise _reject(active)

    fields = _campaign_fields(user, platform, params)
    try:
        with transaction.atomic():
            campaign = JobCampaign.objects.create(**fields)
            campaign.scraper_payload = build_scraper_payload(campaign, params)
            campaign.save(update_fields=["scraper_payload"])
    except IntegrityError as exc:
        # Lost the race against a concurrent request for the same user.
        active = get_active_campaign(user)
        if active is None:
            raise
        raise _reject(active) from exc

    logger.info("Campaign %s created for user %s on %s", campaign.id, user.pk, platform)
    forward_to_scraper(campaign)
    return campaign


def forward_to_scraper(campaign: JobCampaign) -> JobCampaign:
    """
    POST the scraper payload to the platform's webhook. Without a webhook
    the campaign stays pending for an out-of-band worker to pick up.
    """
    url = (getattr(settings, "SCRAPER_WEBHOOK_URLS", {}) or {}).get(campaign.platform)
    if not url:
        logger.info("No scraper webhook for %s; campaign %s left pending", campaign.platform, campaign.id)
        return campaign

    timeout = float(getattr(settings, "OUTBOUND_HTTP_TIMEOUT", 20))
    try:
        resp = requests.post(url, json=campaign.scraper_payload, timeout=timeout)
    except requests.RequestException as exc:
        _mark_failed(campaign, {"error": str(exc)})
        raise ProviderError("Failed to submit job request", payload={"error": str(exc)}) from exc

    try:
        body = resp.json() if resp.content else {}
    except ValueError:
        body = {"message": resp.text}

    if not 200 <= resp.status_code < 300:
        _mark_failed(campaign, body)
        raise ProviderError(
            f"Scraper webhook returned {resp.status_code}",
            payload={"provider_response": body, "campaign_id": str(campaign.id)},
        )

    campaign.scraper_response = body if isinstance(body, dict) else {"data": body}
    campaign.status = JobCampaign.STATUS_PROCESSING
    campaign.save(update_fields=["scraper_response", "status", "updated_at"])
    logger.info("Campaign %s forwarded to %s scraper", campaign.id, campaign.platform)
    return campaign


def _mark_failed(campaign: JobCampaign, response: Any) -> None:
    campaign.status = JobCampaign.STATUS_FAILED
    campaign.scraper_response = response if isinstance(response, dict) else {"data": response}
    campaign.save(update_fields=["status", "scraper_response", "updated_at"])
    logger.warning("Scraper forward failed for campaign %s", campaign.id)
