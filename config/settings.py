import os
from dotenv import load_dotenv

load_dotenv()

# PayPal Settings
PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID")
PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET")
PAYPAL_ENVIRONMENT = os.getenv("PAYPAL_ENVIRONMENT", "sandbox").lower()
PAYPAL_BASE_URL = os.getenv(
    "PAYPAL_BASE_URL",
    "https://api-m.paypal.com" if PAYPAL_ENVIRONMENT == "live" else "https://api-m.sandbox.paypal.com"
)
PAYPAL_TIMEOUT = float(os.getenv("PAYPAL_TIMEOUT", 30))

# Commerce defaults
DEFAULT_CURRENCY = "USD"  # Sandbox accounts settle in USD; not read from message text
MERCHANT_EMAIL = os.getenv("MERCHANT_EMAIL", "merchant@example.com")
AUTO_SEND_INVOICES = os.getenv("AUTO_SEND_INVOICES", "true").lower() == "true"

# LLM Settings
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "ollama").lower()  # ollama | openai | none
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.1:8b")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", 0.7))

# Bot Settings
BOT_NAME = os.getenv("BOT_NAME", "PayPal Commerce Assistant")
PORT = int(os.getenv("PORT", 3001))

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()
