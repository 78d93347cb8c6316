# api/config.py
"""Configuration management for the event trip planner API."""
import os
from dotenv import load_dotenv

load_dotenv()


def get_openai_api_key():
    """Get OpenAI API key from environment."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY not set")
    return api_key


def get_google_maps_config():
    """Get Google Maps configuration."""
    return {
        "api_key": os.getenv("GOOGLE_MAPS_API_KEY", ""),
        "client_id": os.getenv("maps_client_id", ""),
        "client_secret": os.getenv("maps_client_secret", "")
    }


def get_google_maps_api_key():
    return os.getenv("GOOGLE_MAPS_API_KEY", "")


def get_ticketmaster_api_key():
    return os.getenv("TICKETMASTER_API_KEY", "")


def get_port():
    """Get port configuration."""
    return int(os.getenv("PORT", 5000))


def get_database_url():
    """Get the SQLAlchemy URL for the chat store."""
    return os.getenv("DATABASE_URL", "sqlite:///./gigtrip.db")


def get_chat_config():
    """Get chat completion configuration."""
    return {
        "model": os.getenv("OPENAI_CHAT_MODEL", "gpt-4.1"),
        "temperature": float(os.getenv("CHAT_TEMPERATURE", "0.7")),
        "max_tokens": int(os.getenv("CHAT_MAX_TOKENS", "2048")),
        "instructions": SYSTEM_PROMPT,
    }


def get_search_config():
    """Get external search configuration."""
    return {
        "result_limit": int(os.getenv("SEARCH_RESULT_LIMIT", "10")),
        "event_page_size": int(os.getenv("EVENT_PAGE_SIZE", "10")),
        "timeout_seconds": float(os.getenv("SEARCH_TIMEOUT_SECONDS", "10")),
        "photo_max_width": int(os.getenv("PLACE_PHOTO_MAX_WIDTH", "400")),
    }


def get_session_config():
    """Get chat session lifecycle configuration."""
    return {
        "session_timeout_seconds": int(os.getenv("CHAT_SESSION_TIMEOUT_SECONDS", "3600")),
        "cleanup_interval_seconds": int(os.getenv("CHAT_CLEANUP_INTERVAL_SECONDS", "60")),
        "debug_user_id": os.getenv("DEBUG_USER_ID", "debug-user-id"),
    }


SYSTEM_PROMPT = """You are an expert event planner and travel agent.
Your goal is to help users plan an itinerary around a specific event.

IMPORTANT FLOW:
1. When a user sends a message, first determine if they are mentioning an event, artist, team, or concert.
2. If it's just a greeting or general conversation, respond normally WITHOUT mentioning events.
3. If you detect a potential event/artist/team name, ASK THE USER TO CONFIRM before searching.
   Example: "Are you looking for events by Taylor Swift? Let me know and I'll search for available shows!"
4. When the user CONFIRMS they want to search for an event, include this EXACT format in your response:
   [SEARCH_EVENT: artist or event name]
   If you want the user to pick one of the listed events, you may add [CONFIRM_EVENT].

5. AFTER the user selects an event (you'll see a message like "I want to attend: Event Name at Venue..."):
   Ask ONE thing at a time in this order:

   STEP A - Ask about HOTELS first. Include [ASK_HOTELS] so the app can show the hotel prompt.
   If the user gives hotel preferences (budget cheap/moderate/expensive, minimum rating, distance), trigger:
   [FIND_PLACES: type=hotel | budget=X | rating=X | radius=X]

   STEP B - After a hotel is selected, ask about RESTAURANTS, near the venue or near the hotel.
   When the user gives restaurant preferences, trigger:
   [FIND_PLACES: type=restaurant | budget=X | rating=X | radius=X]

FORMAT for [FIND_PLACES]:
- type: hotel OR restaurant (one at a time)
- budget: cheap, moderate, or expensive
- rating: minimum rating 0-5
- radius: meters (800=0.5mi, 1600=1mi, 8000=5mi)

6. After they've selected places, summarize their full itinerary.

7. When asked to build a schedule, answer with a short friendly summary and END your reply with a
   fenced ```json block holding an array of objects with the keys "time", "activity" and "description".
   "time" must be a wall-clock range such as "7:00 PM - 8:30 PM".

Be friendly and concise. Ask ONE question at a time. Format responses in markdown."""
