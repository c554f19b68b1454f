"""Basic dispatch and analysis example using the built-in DI container.

Expects provider keys in the environment (QWEN_API_KEY, KIMI_API_KEY, ...).
"""

import asyncio
import logging

from report_ai.core.container import DIContainer
from report_ai.domain.models import AIRequest


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    dispatcher = DIContainer.create_dispatcher()

    response = await dispatcher.call_ai(
        AIRequest(prompt="Summarize the main drivers of evening peak load.")
    )
    print("Provider:", response.provider)
    print("Tokens:", response.usage.total_tokens)
    print("Response:", response.content)

    service = DIContainer.create_analysis_service(dispatcher)
    readings = [{"hour": hour, "load": 120 + 3 * hour} for hour in range(24)]
    run = await service.run(
        readings,
        analysis_type="trend",
        on_progress=lambda agent, percent, message: print(f"{agent}: {percent}% {message}"),
    )
    for result in run.results:
        print(result.agent_name, result.status.value, list(result.insights))
    if run.report is not None:
        html = DIContainer.create_export_service().render_report("html", run.report)
        print("Saved", run.report.id, "-", html.size, "bytes of HTML")

    print(dispatcher.get_stats().model_dump())


if __name__ == "__main__":
    asyncio.run(main())
