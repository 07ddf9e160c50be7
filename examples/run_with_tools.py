"""
Example: Streaming a Run with Tools and Usage

This example drives a run against the scripted fake model, so it works
without provider credentials. It shows how to attach custom handlers,
read the aggregated content parts and collect per-call usage.
"""

import asyncio

from runstream import (
    Calculator,
    FakeResponse,
    GraphEvent,
    HumanMessage,
    LLMConfig,
    Run,
)
from runstream.models import ToolCall
from runstream.observability import InMemoryMetricsSink, configure_logging


async def example_simple_run():
    """Single model call with token-level streaming."""
    print("=== Simple Run ===\n")

    run = await Run.create({
        "run_id": "example-simple",
        "graph_config": {
            "type": "standard",
            "llm_config": LLMConfig(
                provider="fake",
                responses=["Python is a high-level programming language."],
            ),
            "instructions": "You are a friendly AI assistant.",
        },
        "return_content": True,
        "custom_handlers": {
            # Print tokens as they arrive
            GraphEvent.ON_MESSAGE_DELTA: lambda event, metadata=None, graph=None: print(
                event.data.content[0].text, end="", flush=True
            ),
        },
    })

    parts = await run.process_stream(
        {"messages": [HumanMessage("What is Python?")]},
        {"configurable": {"thread_id": "conversation-1"}},
    )

    print("\n\nContent parts:")
    for part in parts:
        print(f"  {part.to_dict()}")
    print(f"\nTotal tokens: {run.result.total_tokens}")


async def example_tool_run():
    """Model asks for the calculator, then answers with its result."""
    print("\n=== Run with Tools ===\n")

    sink = InMemoryMetricsSink()
    call = ToolCall(id="call_1", name="calculator", args={"input": "12 * 7"})

    async def on_tool_end(event, metadata=None, graph=None):
        print(f"Tool {event.data.name} returned {event.data.output}")

    run = await Run.create(
        {
            "graph_config": {
                "llm_config": LLMConfig(
                    provider="fake",
                    responses=[FakeResponse(tool_calls=[call]), "12 times 7 is 84."],
                ),
                "tools": [Calculator()],
            },
            "custom_handlers": {GraphEvent.TOOL_END: on_tool_end},
        },
        metrics_sink=sink,
    )

    await run.process_stream(
        {"messages": [HumanMessage("What is 12 times 7?")]},
        {"configurable": {"thread_id": "conversation-2"}},
    )

    result = run.result
    print(f"Final text: {result.text}")
    for usage in result.usage:
        print(f"  Input tokens: {usage.input_tokens}, output tokens: {usage.output_tokens}")

    summary = await sink.get_summary()
    print(f"\nRuns recorded: {summary.count}, total tokens: {summary.total_tokens}")


async def main():
    configure_logging()
    await example_simple_run()
    await example_tool_run()


if __name__ == "__main__":
    asyncio.run(main())
