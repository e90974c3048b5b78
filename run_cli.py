from __future__ import annotations
import argparse, asyncio, json
from coping_ai.config import Settings, configure_logging
from coping_ai.errors import ProviderError
from coping_ai.models import UserProfile
from coping_ai.orchestration import Orchestrator


async def run(args: argparse.Namespace) -> object:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    orch = Orchestrator(settings)
    profile = UserProfile(
        age=args.age,
        activity_level=args.activity_level,
        work_environment=args.work_environment,
        coping_styles=args.coping_styles,
    )
    if args.task == "exercises":
        plan = await orch.get_personalized_exercises(
            args.provider, args.model, args.api_key, args.text, profile, args.consent, {}, args.language
        )
        return plan.model_dump(by_alias=True)
    if args.task == "journal":
        return {"analysis": await orch.get_journal_analysis(args.provider, args.model, args.api_key, args.text, args.language)}
    if args.task == "thought":
        return {"questions": await orch.get_thought_challenge_help(
            args.provider, args.model, args.api_key, args.situation, args.text, args.language
        )}
    if args.task == "suggestion":
        return {"suggestion": await orch.get_for_you_suggestion(args.provider, args.model, args.api_key, profile, args.language)}
    return {"quotes": await orch.get_motivational_quotes(args.provider, args.model, args.api_key, args.language)}


def main():
    parser = argparse.ArgumentParser(description="Run one coping assistant task against an LLM provider")
    parser.add_argument("--task", choices=["exercises", "journal", "thought", "suggestion", "quotes"], default="exercises")
    parser.add_argument("--provider", default="gemini")
    parser.add_argument("--model", default="")
    parser.add_argument("--api-key", dest="api_key", default=None)
    parser.add_argument("--language", default="en")
    parser.add_argument("--consent", choices=["essential", "enhanced", "complete"], default="essential")
    parser.add_argument("--text", default="My heart is racing and I can't stop worrying about tomorrow's presentation.",
                        help="Symptoms, journal entry or negative thought depending on --task")
    parser.add_argument("--situation", default="I have a presentation at work tomorrow.")
    parser.add_argument("--age", type=int, default=None)
    parser.add_argument("--activity_level", default=None)
    parser.add_argument("--work_environment", default=None)
    parser.add_argument("--coping_styles", default=None)
    args = parser.parse_args()

    try:
        result = asyncio.run(run(args))
    except ProviderError as exc:
        parser.exit(1, json.dumps(exc.to_dict(), ensure_ascii=False) + "\n")
    print(json.dumps(result, indent=2, ensure_ascii=False))

if __name__ == "__main__":
    main()
