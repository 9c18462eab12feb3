import smtplib
from dataclasses import dataclass, field
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from html import escape
from typing import List, Optional

from app.core.config import settings
from app.core.logger import logger
from app.utils.dates import utcnow


@dataclass
class EmailDestination:
    name: str
    city: Optional[str] = None


@dataclass
class TrackerEmailData:
    tracker_id: str
    trip_name: Optional[str]
    destination: Optional[str]
    traveler_name: Optional[str] = None
    save_date: Optional[datetime] = None
    destinations: List[EmailDestination] = field(default_factory=list)


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def format_destinations(destinations: List[EmailDestination]) -> str:
    if not destinations:
        return "No destinations added yet"
    return "\n".join(
        f"{index}. {dest.name} - {dest.city or 'Unknown City'}"
        for index, dest in enumerate(destinations, start=1)
    )


def build_subject(data: TrackerEmailData) -> str:
    return f"🎯 Your Trip Tracker ID: {data.tracker_id} - {data.trip_name or data.destination}"


def build_text_body(data: TrackerEmailData) -> str:
    traveler = data.traveler_name or "Traveler"
    saved_on = (data.save_date or utcnow()).strftime("%m/%d/%Y")
    return f"""🎯 Trip Tracker Saved Successfully!

Hello {traveler}!
Your trip tracker has been created successfully. Here are the details:

TRACKER ID: {data.tracker_id}

Trip Information:
- Trip Name: {data.trip_name or data.destination}
- Main Destination: {data.destination}
- Saved Date: {saved_on}
- Traveler: {data.traveler_name or 'Not specified'}

Planned Destinations:
{format_destinations(data.destinations)}

How to Access Your Trip:
1. Visit the Ticket Tracker page on {settings.APP_NAME}
2. Enter your Tracker ID: {data.tracker_id}
3. Click "Track Trip" to view your complete itinerary
4. Share this Tracker ID with travel companions

Keep this email safe - you'll need the Tracker ID to access your trip!
🌟 {settings.APP_NAME} Travel Planner
"""


def build_html_body(data: TrackerEmailData) -> str:
    traveler = escape(data.traveler_name or "Traveler")
    trip_name = escape(data.trip_name or data.destination or "")
    destination = escape(data.destination or "")
    tracker_id = escape(data.tracker_id)
    saved_on = (data.save_date or utcnow()).strftime("%m/%d/%Y")
    destinations = escape(format_destinations(data.destinations))

    return f"""
    <html>
      <body style="font-family: 'Segoe UI', Tahoma, sans-serif; color: #333; max-width: 600px; margin: 0 auto;">
        <h1 style="color: #2c3e50; text-align: center;">🎯 Trip Tracker Saved Successfully!</h1>
        <p>Hello {traveler}! Your trip has been saved and is ready to track.</p>
        <div style="background-color: #667eea; color: white; padding: 15px 25px; border-radius: 8px;
                    text-align: center; font-size: 24px; font-weight: bold; letter-spacing: 2px;">
          {tracker_id}
        </div>
        <h3>📋 Trip Information</h3>
        <p><strong>Trip Name:</strong> {trip_name}</p>
        <p><strong>Main Destination:</strong> {destination}</p>
        <p><strong>Saved Date:</strong> {saved_on}</p>
        <p><strong>Traveler:</strong> {escape(data.traveler_name or 'Not specified')}</p>
        <h4>🗺️ Planned Destinations:</h4>
        <pre style="font-family: inherit; white-space: pre-wrap;">{destinations}</pre>
        <h3>🔍 How to Access Your Trip</h3>
        <ol>
          <li>Visit the <strong>Ticket Tracker</strong> page on {escape(settings.APP_NAME)}</li>
          <li>Enter your Tracker ID: <strong>{tracker_id}</strong></li>
          <li>Click "Track Trip" to view your complete itinerary</li>
          <li>Share this Tracker ID with travel companions to let them view the trip</li>
        </ol>
        <p style="text-align: center; color: #6c757d; font-size: 14px;">
          Keep this email safe - you'll need the Tracker ID to access your trip!
        </p>
      </body>
    </html>
    """


class EmailService:
    """SMTP transport for the tracker confirmation email."""

    def __init__(
        self,
        host: str = settings.SMTP_HOST,
        port: int = settings.SMTP_PORT,
        user: str = settings.SMTP_USER,
        password: str = settings.SMTP_PASSWORD,
        use_ssl: bool = settings.SMTP_USE_SSL,
        sender: str = settings.sender_email,
        timeout: int = settings.SMTP_TIMEOUT_SECONDS,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_ssl = use_ssl
        self.sender = sender
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            server.starttls()
        if self.user:
            server.login(self.user, self.password)
        return server

    def build_message(self, recipient: str, data: TrackerEmailData) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = formataddr((settings.APP_NAME, self.sender))
        message["To"] = recipient
        message["Subject"] = build_subject(data)
        message["Message-ID"] = make_msgid(domain=self.sender.split("@")[-1] or None)
        message.attach(MIMEText(build_text_body(data), "plain"))
        message.attach(MIMEText(build_html_body(data), "html"))
        return message

    def send(self, recipient: str, data: TrackerEmailData) -> SendResult:
        message = self.build_message(recipient, data)
        try:
            with self._connect() as server:
                server.sendmail(self.sender, [recipient], message.as_string())
        except (smtplib.SMTPException, OSError) as e:
            return SendResult(success=False, error=str(e))
        return SendResult(success=True, message_id=message["Message-ID"])

    def verify_connection(self) -> bool:
        try:
            with self._connect() as server:
                server.noop()
        except (smtplib.SMTPException, OSError) as e:
            if isinstance(e, smtplib.SMTPAuthenticationError):
                logger.error("Email authentication failed, check SMTP_USER / SMTP_PASSWORD (app password for Gmail)")
            else:
                logger.error(f"Email service configuration error: {e}")
            return False
        return True
