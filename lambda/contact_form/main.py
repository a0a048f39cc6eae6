import base64
import binascii
import boto3
import json
import os
from typing import Any, Dict
from botocore.exceptions import ClientError

# --- Environment Configuration ---
SENDER = os.environ.get('SENDER')
RECIPIENT = os.environ.get('RECIPIENT')
ALLOWED_ORIGIN = os.environ.get('ALLOWED_ORIGIN', '*')

REQUIRED_FIELDS = ('name', 'email', 'message')

# Initialize SES client outside the handler for connection re-use
ses = boto3.client('ses')

def response(status_code: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": ALLOWED_ORIGIN
        },
        "body": json.dumps(payload)
    }

def parse_submission(event: Dict[str, Any]) -> Dict[str, str]:
    """
    Extracts the contact form fields from the API Gateway proxy event.
    Raises ValueError with a caller-facing message on malformed input.
    """
    raw = event.get('body') or ''
    if event.get('isBase64Encoded'):
        try:
            raw = base64.b64decode(raw, validate=True).decode('utf-8')
        except (binascii.Error, UnicodeDecodeError):
            raise ValueError("Body must be valid base64")

    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        raise ValueError("Body must be valid JSON")

    if not isinstance(body, dict):
        raise ValueError("Body must be a JSON object")

    missing = [f for f in REQUIRED_FIELDS if not str(body.get(f) or '').strip()]
    if missing:
        raise ValueError(f"Missing fields: {', '.join(missing)}")

    submission = {f: str(body[f]).strip() for f in REQUIRED_FIELDS}
    if '@' not in submission['email']:
        raise ValueError("Invalid email address")
    return submission

def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Entry point for POST /contact.
    1. Validates the JSON payload.
    2. Forwards it as a single email through SES (Reply-To: the submitter).
    3. Reports SES failures straight back to the caller. No retries.
    """

    # 1. Input Validation
    try:
        submission = parse_submission(event)
    except ValueError as e:
        print(f"Rejected submission: {e}")
        return response(400, {"message": str(e)})

    # 2. Forward to SES
    try:
        result = ses.send_email(
            Source=SENDER,
            Destination={"ToAddresses": [RECIPIENT]},
            ReplyToAddresses=[submission['email']],
            Message={
                "Subject": {"Data": f"Contact form: {submission['name']}", "Charset": "UTF-8"},
                "Body": {
                    "Text": {
                        "Data": f"From: {submission['name']} <{submission['email']}>\n\n{submission['message']}",
                        "Charset": "UTF-8"
                    }
                }
            }
        )
    except ClientError as e:
        print(f"SES Error: {e.response['Error']['Message']}")
        return response(502, {"message": e.response['Error']['Message']})

    print(f"Submission forwarded: {result['MessageId']}")
    return response(200, {"message": "sent"})
