"""
PayPal Commerce Assistant
Chat API over the PayPal REST API with rule-based intent routing
"""

import uvicorn
import logging
from config.settings import PORT, BOT_NAME, LLM_PROVIDER, PAYPAL_ENVIRONMENT, AUTO_SEND_INVOICES

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    """Start the chat server"""
    logger.info(f"🚀 Starting {BOT_NAME}...")
    logger.info(f"📡 Chat server will listen on port {PORT}")
    logger.info("="*60)
    logger.info("⚙️  Configuration:")
    logger.info(f"  - PayPal environment: {PAYPAL_ENVIRONMENT}")
    logger.info(f"  - Narration LLM: {LLM_PROVIDER}")
    logger.info(f"  - Auto-send invoices: {'ENABLED' if AUTO_SEND_INVOICES else 'DISABLED'}")
    logger.info("="*60)
    logger.info(
        f"📝 Try: curl -X POST http://localhost:{PORT}/chat -H \"Content-Type: application/json\" "
        "-d '{\"message\": \"Create a payment for $50\"}'"
    )

    uvicorn.run(
        "api.chat:app",
        host="0.0.0.0",
        port=PORT,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
