"""
Follow-up chat about a session's analysis
"""
import json
from typing import List, Optional

from src.core.fallback import FallbackChainExecutor
from src.core.parsing import clean_markdown
from src.core.records import MessageRecord
from src.core.results import Capability
from src.infrastructure.storage import AnalysisStore
from src.providers.registry import ProviderRegistry
from src.services import prompts
from src.utils.exceptions import AllProvidersFailedError, ProvidersUnavailableError
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Most recent messages replayed to the model
HISTORY_LIMIT = 20


class ChatService:
    """Answers questions about an analysis using the session's history"""

    def __init__(
        self,
        registry: ProviderRegistry,
        store: AnalysisStore,
        executor: Optional[FallbackChainExecutor] = None,
        default_model: str = "openai",
        timeout: float = 180.0
    ):
        self.registry = registry
        self.store = store
        self.executor = executor or FallbackChainExecutor(timeout=timeout)
        self.default_model = default_model
        self.timeout = timeout

    async def reply(self, session_id: str, content: str, selected_model: Optional[str] = None) -> List[MessageRecord]:
        """
        Store the user's message and answer it

        Returns:
            [user_message, assistant_message]

        Raises:
            ProvidersUnavailableError: no language model configured; the user
                message is stored anyway and attached to the error details
            AllProvidersFailedError: every configured model failed
        """
        history = await self.store.get_messages(session_id)
        analysis = await self.store.latest_analysis(session_id)
        analysis_id = analysis.id if analysis else None

        user_message = await self.store.create_message(session_id, "user", content, analysis_id=analysis_id)

        if not self.registry.has_llm:
            raise self._unavailable(user_message)

        context = json.dumps(analysis.personality_insights, default=str) if analysis else ""
        system_prompt = prompts.chat_system_prompt(context)
        user_prompt = self._conversation(history[-HISTORY_LIMIT:], content)

        chain = self.registry.configured(self.registry.llm_chain(selected_model or self.default_model))
        outcome = await self.executor.run_sequential(
            Capability.LLM,
            chain,
            lambda adapter: adapter.complete(system_prompt, user_prompt),
            timeout=self.timeout,
        )
        if not outcome.ok:
            if outcome.all_unavailable:
                raise self._unavailable(user_message)
            raise AllProvidersFailedError(Capability.LLM.value, outcome.failures())

        answer = clean_markdown(outcome.result.value)
        assistant_message = await self.store.create_message(session_id, "assistant", answer, analysis_id=analysis_id)
        logger.info(f"Chat reply for session {session_id} served by {outcome.result.provider}")
        return [user_message, assistant_message]

    @staticmethod
    def _unavailable(user_message: MessageRecord) -> ProvidersUnavailableError:
        error = ProvidersUnavailableError(
            Capability.LLM.value,
            "Selected AI model is not available. Please try again with a different model."
        )
        # The client renders the stored user message even though no reply came back
        error.details["user_message"] = user_message.model_dump(mode="json", by_alias=True)
        return error

    @staticmethod
    def _conversation(history: List[MessageRecord], content: str) -> str:
        if not history:
            return content
        lines = ["Here is the conversation so far:", ""]
        for message in history:
            speaker = "User" if message.role == "user" else "Assistant"
            lines += [f"{speaker}: {message.content}", ""]
        lines += [f"User: {content}", "", "Please provide your next response as the assistant."]
        return "\n".join(lines)
