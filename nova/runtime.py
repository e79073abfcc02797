"""Build the object graph for one nova process."""

from dataclasses import dataclass

from loguru import logger

from nova.actions.dispatcher import ActionDispatcher
from nova.actions.resolver import PlanResolver
from nova.config.schema import Config
from nova.mail.base import Mailbox
from nova.mail.notify import EmailGatewayNotifier, LogNotifier, Notifier
from nova.mail.types import EmailMessage
from nova.memory.base import MemoryClient
from nova.memory.mem0_store import Mem0Memory
from nova.pipeline import Pipeline, PipelineResult
from nova.reasoning.brain import ReasoningClient
from nova.reasoning.normalizer import ReasoningNormalizer
from nova.scheduler.service import ReminderStore
from nova.session.history import ConversationHistory
from nova.store.base import KeyValueStore
from nova.store.redis_store import open_store


@dataclass
class Runtime:
    config: Config
    store: KeyValueStore
    reminders: ReminderStore
    dispatcher: ActionDispatcher
    pipeline: Pipeline
    mailbox: Mailbox | None = None
    memory: MemoryClient | None = None

    def start(self) -> None:
        """Start background work: the reminder sweep and new-mail handling."""
        self.reminders.start(self.pipeline.on_wakeup)
        if self.mailbox is not None:
            self.mailbox.set_email_callback(self.on_incoming_email)

    async def on_incoming_email(
        self,
        account_id: str,
        email: EmailMessage | list[EmailMessage],
    ) -> PipelineResult | None:
        """Mailbox callback: run the email pipeline, logging rather than raising on failure."""
        try:
            return await self.pipeline.handle_incoming_email(account_id, email)
        except Exception as e:
            logger.error(f"Error handling incoming email in {account_id}: {e}")
            return None

    async def close(self) -> None:
        if self.mailbox is not None:
            self.mailbox.set_email_callback(None)
        self.reminders.stop()
        await self.store.close()


async def build_runtime(
    config: Config,
    mailbox: Mailbox | None = None,
    notifier: Notifier | None = None,
    memory: MemoryClient | None = None,
    store: KeyValueStore | None = None,
) -> Runtime:
    """
    Wire every collaborator from configuration.

    A mail transport is supplied by the caller; without one, mail actions
    fail with a configuration error and notifications go to the log.
    """
    if store is None:
        store = await open_store(config.store)

    if notifier is None:
        if mailbox is not None:
            notifier = EmailGatewayNotifier(mailbox, config.owner.notify_account, config.owner.notify_subject)
        else:
            logger.warning("No mail transport configured; owner notifications will only be logged")
            notifier = LogNotifier()

    if memory is None and config.memory.enabled:
        memory = Mem0Memory(api_key=config.memory.api_key, user_id=config.memory.user_id)

    reminders = ReminderStore(
        store,
        merge_window_ms=config.scheduler.merge_window_ms,
        sweep_interval_s=config.scheduler.sweep_interval_s,
        index_key=config.scheduler.index_key,
    )
    dispatcher = ActionDispatcher(
        resolver=PlanResolver(mailbox, search_limit=config.email.search_limit),
        mailbox=mailbox,
        reminders=reminders,
        memory=memory,
        notifier=notifier,
        owner=config.owner,
        email_limit=config.email.default_limit,
        default_delay_ms=config.scheduler.default_delay_ms,
        daily_summary_hour=config.scheduler.daily_summary_hour,
    )
    brain = ReasoningClient(
        model=config.agent.model,
        temperature=config.agent.temperature,
        memory_temperature=config.agent.memory_temperature,
        api_key=config.agent.api_key or None,
        api_base=config.agent.api_base,
    )
    history = ConversationHistory(store, config.store.history_key, config.store.history_length)
    pipeline = Pipeline(
        brain=brain,
        normalizer=ReasoningNormalizer(config.owner),
        dispatcher=dispatcher,
        history=history,
        memory=memory,
        memory_search_limit=config.memory.search_limit,
    )
    return Runtime(
        config=config,
        store=store,
        reminders=reminders,
        dispatcher=dispatcher,
        pipeline=pipeline,
        mailbox=mailbox,
        memory=memory,
    )
