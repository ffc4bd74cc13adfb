import json
import logging
from stayseeker.models import SearchRequest
from stayseeker.orchestrator import run_search

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def parse_event(event) -> SearchRequest:
    payload = event
    if isinstance(event, dict) and "body" in event:
        payload = event["body"]
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValueError(f"Request body is not valid JSON: {e}")
    return SearchRequest.from_dict(payload)


def lambda_handler(event, context):
    logger.info("Stay Seeker run starting")

    try:
        request = parse_event(event)
    except ValueError as e:
        logger.warning(f"Rejected request: {e}")
        return {"statusCode": 400, "body": json.dumps({"error": str(e)})}

    logger.info(
        f"Searching {request.destination} from {request.check_in} to {request.check_out}"
    )
    results = run_search(request)

    for source, result in results.items():
        cheapest = result["cheapest"]
        logger.info(f"{source}: {cheapest.name} at {cheapest.display_price}")

    logger.info("Done.")

    return {
        "statusCode": 200,
        "body": json.dumps(
            {
                "message": "Scraping completed successfully",
                "results": {
                    source: {label: listing.to_dict() for label, listing in result.items()}
                    for source, result in results.items()
                },
            }
        ),
    }
