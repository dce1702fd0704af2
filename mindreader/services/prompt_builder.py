import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Tuple

from ..models import Message
from .history import AnswerKind, asked_questions, qa_pairs, rejected_guesses
from .sanitizer import is_guess
from .topic_classifier import (
	FactSummary,
	KeywordTopicClassifier,
	TopicClassifier,
	TopicTag,
	dont_know_topic,
	summarize_facts,
	tally_recent,
)

GUESS_FORMAT = "I think you are thinking of: [NAME]"

OPENING_VARIANTS = (
	'Ask your first question. Start with gender ("Is your character a female?" or "Is your character a male?"). Start directly with a short question (3-5 words).',
	"Ask your first question. Think like Akinator: the single question that eliminates half of everyone is about gender, so ask that first. Keep it to 3-5 words.",
	'Ask your first question about gender, for example "Is your character a man?" or "Is your character a woman?". No introduction, just the question.',
	"Ask your first question. Begin with gender before anything else, then you can move on to real/fictional, nationality or time period. Start directly with a short question.",
)


class Phase(str, Enum):
	START = "start"
	ASK_NEXT = "ask_next"
	POST_WRONG_GUESS = "post_wrong_guess"


class Directive(Protocol):
	def render(self) -> str:
		...


@dataclass(frozen=True)
class BaseRules:
	def render(self) -> str:
		return (
			"You are playing Akinator. Your response must be ONLY one yes/no question, "
			f'or a single guess formatted exactly as: "{GUESS_FORMAT}". '
			"NO greetings, reactions, emojis, markdown, bold, asterisks, parenthetical explanations or exclamations. "
			'BE SPECIFIC: avoid vague terms like "entertainer", "famous person" or "celebrity". '
			"DO NOT ask about names directly (e.g. \"Is your character's first name...\", "
			"\"Does your character's name start with...\"). "
			"The person could be ANYONE: real or fictional, famous or obscure, historical or modern. "
			"Each question should eliminate large groups of possibilities."
		)


@dataclass(frozen=True)
class ForceTopic:
	tag: TopicTag

	def render(self) -> str:
		if self.tag is TopicTag.GENDER:
			return (
				"CRITICAL: You have not established the character's gender yet. "
				'Your next question MUST be about gender, e.g. "Is your character a male?" or "Is your character a female?".'
			)
		return f"CRITICAL: Your next question MUST be about {self.tag.label}."


@dataclass(frozen=True)
class ForbidTopic:
	tag: TopicTag
	permanent: bool = False

	def render(self) -> str:
		scope = "for the rest of this game" if self.permanent else "in your next question"
		text = f"You are FORBIDDEN from asking about {self.tag.label} {scope}."
		if self.tag is TopicTag.OCCUPATION:
			text += " Do NOT ask whether the character is an actor, singer, musician, athlete, politician or holds any other job."
		return text


@dataclass(frozen=True)
class AvoidTopicNextTurn:
	tag: TopicTag
	alternatives: Tuple[TopicTag, ...]

	def render(self) -> str:
		options = ", ".join(t.label for t in self.alternatives)
		return (
			f"CRITICAL: You just asked about {self.tag.label}. Switch to a different topic - "
			f"ask about {options} or achievements."
		)


@dataclass(frozen=True)
class RepeatedQuestion:
	def render(self) -> str:
		return "CRITICAL: You just repeated a similar question. Switch to a COMPLETELY different topic immediately."


@dataclass(frozen=True)
class VaryTopics:
	question_count: int
	specific_from: int = 5

	def render(self) -> str:
		text = (
			"IMPORTANT: Vary your questions strategically. Switch between gender, real/fictional status, "
			"relationships, appearance (hair, eyes, height, distinctive features), time period, nationality "
			"and achievements. Never ask about the same topic twice in a row."
		)
		if self.question_count >= self.specific_from:
			text += (
				" Ask VERY SPECIFIC questions about appearance now, with endless variety: "
				'"Does your character have blonde hair?", "Is your character bald?", '
				'"Is your character known for wearing glasses?", "Does your character have tattoos?", '
				'"Does your character have a distinctive accent?".'
			)
		return text


@dataclass(frozen=True)
class AvoidTopics:
	labels: Tuple[str, ...]

	def render(self) -> str:
		return (
			f"The player did not know the answer to questions about: {', '.join(self.labels)}. "
			"Do NOT ask about these topics again."
		)


@dataclass(frozen=True)
class SummarizeFacts:
	summary: FactSummary

	def render(self) -> str:
		lines = ["Known facts so far:"]
		if self.summary.confirmed:
			lines.append("Confirmed (answered yes): " + " | ".join(self.summary.confirmed))
		if self.summary.excluded:
			lines.append("Ruled out (answered no): " + " | ".join(self.summary.excluded))
		for constraint in self.summary.hard_constraints:
			lines.append("CONSTRAINT: " + constraint)
		return "\n".join(lines)


@dataclass(frozen=True)
class FollowUp:
	text: str

	def render(self) -> str:
		return self.text


@dataclass(frozen=True)
class NoRepeat:
	questions: Tuple[str, ...]

	def render(self) -> str:
		return (
			f"CRITICAL: DO NOT REPEAT ANY OF THESE PREVIOUS QUESTIONS: {' | '.join(self.questions)}. "
			"You MUST ask a completely NEW question that you have NOT asked before."
		)


@dataclass(frozen=True)
class AvoidGuesses:
	names: Tuple[str, ...]

	def render(self) -> str:
		return (
			f"These guesses were already rejected by the player: {', '.join(self.names)}. "
			"NEVER guess any of them again."
		)


@dataclass(frozen=True)
class ReadyToGuess:
	summary: FactSummary = field(default_factory=FactSummary)

	def render(self) -> str:
		text = (
			f'Guess now. Format: "{GUESS_FORMAT}". '
			"NO emojis, markdown, bold, asterisks, greetings or reactions."
		)
		if not self.summary.is_empty():
			text += " Your guess MUST fit every known fact.\n" + SummarizeFacts(self.summary).render()
		return text


FOLLOW_UP_REAL = "Based on the answer, ask about time period, nationality, or specific achievements - NOT occupation."
FOLLOW_UP_GENDER = "Based on the answer, ask about appearance, relationships, or distinctive features - NOT occupation."
FOLLOW_UP_OCCUPATION = "Based on the answer, ask about SPECIFIC appearance details or achievements - NOT another occupation question."
FOLLOW_UP_NO = 'Based on the "no" answer, switch to a COMPLETELY different topic - don\'t ask similar questions.'


def compose(directives: Sequence[Directive]) -> str:
	parts = [d.render().strip() for d in directives]
	return "\n\n".join(p for p in parts if p)


def escalate(instruction: str, previous_questions: Sequence[str], last: int = 5) -> str:
	recent = " | ".join(list(previous_questions)[-last:])
	return (
		instruction
		+ "\n\nERROR: You just repeated or asked a very similar question. "
		+ f"Ask a COMPLETELY DIFFERENT question with different words. Previous questions: {recent}"
	)


class PromptBuilder:
	def __init__(self, classifier: Optional[TopicClassifier] = None, *, recency_window: int = 3, specific_from: int = 5) -> None:
		self.classifier = classifier or KeywordTopicClassifier()
		self.recency_window = recency_window
		self.specific_from = specific_from

	def opening_message(self, rng: Optional[random.Random] = None) -> str:
		return (rng or random).choice(OPENING_VARIANTS)

	def _has_topic(self, questions: Sequence[str], tag: TopicTag) -> bool:
		return any(tag in self.classifier.classify(q) for q in questions)

	def _ordered(self, tags) -> List[TopicTag]:
		if isinstance(self.classifier, KeywordTopicClassifier):
			return self.classifier.ordered(tags)
		return [t for t in TopicTag if t in set(tags)]

	def _variety(self, questions: List[str], question_count: int, occupation_locked: bool) -> Directive:
		if len(questions) >= 2 and questions[-1] == questions[-2]:
			return RepeatedQuestion()
		if questions:
			tally = tally_recent(questions, self.classifier, self.recency_window)
			hits = [t for t in self._ordered(self.classifier.classify(questions[-1])) if tally[t] >= 1]
			if hits:
				tag = hits[0]
				alternatives = tuple(
					t for t in self._ordered(TopicTag)
					if t is not tag and not (occupation_locked and t is TopicTag.OCCUPATION)
				)
				return AvoidTopicNextTurn(tag, alternatives)
		return VaryTopics(question_count, self.specific_from)

	def _follow_up(self, history: Sequence[Message]) -> Optional[FollowUp]:
		if len(history) < 2:
			return None
		question, answer = history[-2], history[-1]
		if question.role != "assistant" or answer.role != "user" or is_guess(question.content):
			return None
		pairs = qa_pairs(history[-2:])
		kind = pairs[0].kind
		tags = self.classifier.classify(question.content)
		if kind is AnswerKind.YES:
			if TopicTag.REAL_FICTIONAL in tags:
				return FollowUp(FOLLOW_UP_REAL)
			if TopicTag.GENDER in tags:
				return FollowUp(FOLLOW_UP_GENDER)
			if TopicTag.OCCUPATION in tags:
				return FollowUp(FOLLOW_UP_OCCUPATION)
			return None
		if kind is AnswerKind.NO:
			return FollowUp(FOLLOW_UP_NO)
		return None

	def build_directives(self, history: Sequence[Message], phase: Phase, guess_ready: bool = False) -> List[Directive]:
		questions = asked_questions(history)
		question_count = sum(1 for m in history if m.role == "assistant")
		occupation_locked = self._has_topic(questions, TopicTag.OCCUPATION)
		lockout = [ForbidTopic(TopicTag.OCCUPATION, permanent=True)] if occupation_locked else []
		rejected = rejected_guesses(history)
		avoid_guesses = [AvoidGuesses(tuple(rejected))] if rejected else []
		pairs = qa_pairs(history)
		summary = summarize_facts(pairs)

		if guess_ready and phase is not Phase.START:
			return [ReadyToGuess(summary), *avoid_guesses, *lockout]

		directives: List[Directive] = [BaseRules()]
		if question_count <= 2 and not self._has_topic(questions, TopicTag.GENDER):
			directives.append(ForceTopic(TopicTag.GENDER))
		else:
			directives.append(self._variety(questions, question_count, occupation_locked))
		directives.extend(lockout)

		labels: List[str] = []
		for pair in pairs:
			if pair.kind is AnswerKind.DONT_KNOW:
				label = dont_know_topic(pair.question)
				if label and label not in labels:
					labels.append(label)
		if labels:
			directives.append(AvoidTopics(tuple(labels)))

		if not summary.is_empty():
			directives.append(SummarizeFacts(summary))

		if phase is not Phase.START:
			follow_up = self._follow_up(history)
			if follow_up is not None:
				directives.append(follow_up)

		if questions:
			directives.append(NoRepeat(tuple(questions)))
		directives.extend(avoid_guesses)
		return directives

	def build(self, history: Sequence[Message], phase: Phase, guess_ready: bool = False) -> str:
		return compose(self.build_directives(history, phase, guess_ready=guess_ready))
