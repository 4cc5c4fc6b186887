from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from datetime import datetime, timezone
import logging
from config.settings import BOT_NAME, LLM_PROVIDER, LOG_LEVEL, PAYPAL_CLIENT_ID, PAYPAL_CLIENT_SECRET, PAYPAL_ENVIRONMENT
from bot.agent import CommerceAgent
from bot.llm_handler import NarrationLLM
from bot.paypal_api import PayPalAPI
from bot.paypal_tools import build_paypal_tools
from utils.error_handler import register_error_handlers

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

EXAMPLE_MESSAGE = "Create a payment for $50"


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    response: str


def create_app(agent: CommerceAgent = None) -> FastAPI:
    """
    Build the chat API

    Args:
        agent: Preconfigured agent; when omitted one is wired to the live
            PayPal API and the configured narration model

    Returns:
        FastAPI application
    """
    paypal_api = None
    if agent is None:
        paypal_api = PayPalAPI()
        agent = CommerceAgent(build_paypal_tools(paypal_api), NarrationLLM())

    app = FastAPI(
        title=BOT_NAME,
        version="1.0.0",
        description="Chat front-end for PayPal orders, invoices, catalog, subscriptions and disputes"
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register error handlers
    register_error_handlers(app)

    app.state.agent = agent

    @app.on_event("shutdown")
    async def shutdown_event():
        if paypal_api is not None:
            await paypal_api.close()
            logger.info("✓ PayPal client closed")

    @app.get("/")
    async def root():
        """Endpoint index"""
        return {
            "message": f"{BOT_NAME} API",
            "endpoints": {
                "chat": "POST /chat",
                "health": "GET /health",
                "tools": "GET /tools",
            },
            "example": {
                "url": "/chat",
                "method": "POST",
                "body": {"message": EXAMPLE_MESSAGE},
            },
        }

    @app.post("/chat", response_model=ChatResponse)
    async def chat(request: ChatRequest):
        """
        Answer one chat message

        Operation failures are part of the reply text, so this endpoint
        answers 200 for them; only an empty message is rejected.
        """
        message = request.message.strip()
        if not message:
            return JSONResponse(status_code=400, content={"error": "Message is required"})

        logger.info(f"🤖 Processing: \"{message}\"")
        reply = await app.state.agent.process_message(message)
        logger.info(f"✅ Response ready (intent={reply.intent})")

        return ChatResponse(response=reply.text)

    @app.get("/health")
    async def health_check():
        """Health check with configuration summary"""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "paypal": "configured" if PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET else "not_configured",
                "paypal_environment": PAYPAL_ENVIRONMENT,
                "llm": "enabled" if app.state.agent.llm.available else "fallback",
                "llm_provider": LLM_PROVIDER,
            },
        }

    @app.get("/tools")
    async def list_tools():
        """Registered PayPal capabilities"""
        tool_names = app.state.agent.tool_names
        return {
            "tools": tool_names,
            "count": len(tool_names),
            "status": "available",
        }

    return app


app = create_app()
