"""LLM-based intent classifier: one provider of the chain."""

import logging
from abc import ABC, abstractmethod
from typing import List

from pydantic import ValidationError

from llm.base_client import BaseLLMClient, Message
from memory.context_manager import ConversationContextManager
from memory.models import ConversationTurn
from schemas.actions import parse_action
from schemas.context import FinancialContext
from schemas.ledger import Category
from schemas.responses import ClassificationResult
from .action_schema import get_action_tools

logger = logging.getLogger(__name__)


class IntentProvider(ABC):
    """A generative-text provider that classifies a message."""

    @abstractmethod
    def classify(
        self,
        context: FinancialContext,
        history: List[ConversationTurn],
        message: str
    ) -> ClassificationResult:
        """
        Classify a user message.

        Raises:
            llm.errors.ProviderError: On any provider failure
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass


class LLMIntentClassifier(IntentProvider):
    """
    Classifies messages with a chat LLM, offering each financial action as a
    function tool.

    The first tool call that validates against an action becomes the
    structured action. Calls with an unknown name or invalid arguments are
    ignored and the reply is treated as free text.
    """

    SYSTEM_PROMPT = """You are a personal finance assistant. You help the user track income and expenses,
manage budgets, goals, investments and recurring transactions, and understand their spending.

## Capabilities
- Record, search, modify and delete transactions
- Create budgets (monthly, quarterly, yearly), goals, investments and recurring transactions
- List goals and budgets
- Compute statistics and analyze spending habits

## User financial snapshot ({period})
- Balance: {balance:.2f} {currency}
- Income this month: {income:.2f} {currency}
- Expenses this month: {expense:.2f} {currency}
- Active budgets: {budgets}
- Active goals: {goals}

## Available categories
{categories}

## Rules
- When the user asks for an operation, call exactly one function.
- Amounts are always positive; use kind "expense" or "income" for the direction.
- Otherwise answer briefly in the user's language."""

    def __init__(self, llm_client: BaseLLMClient, use_tools: bool = True):
        """
        Initialize classifier.

        Args:
            llm_client: LLM client for classification
            use_tools: Offer the action schema as function tools
        """
        self.llm_client = llm_client
        self.use_tools = use_tools
        self.tools = get_action_tools() if use_tools else None

    @property
    def name(self) -> str:
        return self.llm_client.get_provider_name()

    def build_system_prompt(self, context: FinancialContext) -> str:
        """Render the system prompt for a financial snapshot."""
        return self.SYSTEM_PROMPT.format(
            period=context.period_start.strftime("%B %Y"),
            balance=context.balance,
            income=context.income_this_period,
            expense=context.expense_this_period,
            currency=context.currency,
            budgets=context.active_budget_count,
            goals=context.active_goal_count,
            categories=", ".join(category.value for category in Category),
        )

    def classify(
        self,
        context: FinancialContext,
        history: List[ConversationTurn],
        message: str
    ) -> ClassificationResult:
        """
        Classify a message using the LLM.

        Args:
            context: Financial snapshot
            history: Recent turns, oldest first
            message: Raw user message

        Returns:
            ClassificationResult with free text and optional action

        Raises:
            llm.errors.ProviderError: When the LLM call fails
        """
        messages = [Message(role="system", content=self.build_system_prompt(context))]
        messages.extend(ConversationContextManager.to_messages(history))
        messages.append(Message(role="user", content=message))

        response = self.llm_client.chat(
            messages=messages,
            tools=self.tools,
            temperature=0.1,  # Low temperature for consistent classification
            max_tokens=1024
        )

        action = None
        for tool_call in response.tool_calls or []:
            try:
                action = parse_action(tool_call.name, tool_call.arguments)
                break
            except (ValueError, ValidationError) as e:
                logger.warning(f"Ignoring malformed call to {tool_call.name}: {e}")

        if action:
            logger.info(f"{self.name} classified message as {action.action}")

        return ClassificationResult(
            provider=self.name,
            response_text=response.content or "",
            action=action,
        )
