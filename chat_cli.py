#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Interactive console chat with function calling.
Talks directly to the configured text-completion backend, using the sample functions.
"""

import sys
import asyncio
import logging

import httpx

from config_loader import config_loader
from textcall_core.errors import ModelBackendError
from textcall_core.function_calling import generate_function_prompt
from textcall_core.orchestrator import FunctionCallOrchestrator
from textcall_core.plugins import build_default_registry
from textcall_core.upstream_model import HttpCompletionModel


async def chat():
    """Run the chat loop until EOF or 'exit'."""
    config = config_loader.load_config()
    settings = config_loader.get_generation_settings().model_copy(update={"auto_invoke": True})
    registry = build_default_registry()

    print("=" * 60)
    print("Textcall console chat")
    print(f"Backend: {config.upstream.base_url}")
    print(f"Functions: {', '.join(registry.names())}")
    print("Type 'exit' to quit")
    print("=" * 60)

    async with httpx.AsyncClient() as http_client:
        model = HttpCompletionModel(
            http_client,
            config.upstream.base_url,
            api_key=config.upstream.api_key,
            model=config.upstream.model,
            timeout=config.upstream.timeout,
        )
        orchestrator = FunctionCallOrchestrator(model, default_settings=settings, stop_labels=config.features.stop_labels)
        dialogue = orchestrator.create_dialogue(generate_function_prompt(registry, config.features.prompt_template))

        while True:
            try:
                user_message = (await asyncio.to_thread(input, "User > ")).strip()
            except EOFError:
                break
            if user_message.lower() == "exit":
                break
            if not user_message:
                continue

            turn_start = len(dialogue)
            dialogue.add_user_message(user_message)
            print("Assistant > ", end="", flush=True)
            try:
                async for fragment in orchestrator.stream_turn(dialogue, settings, registry):
                    print(fragment, end="", flush=True)
            except ModelBackendError as e:
                print(f"\n❌ Model backend error: {e}")
                # Drop the unanswered turn so the next one starts clean
                while len(dialogue) > turn_start:
                    dialogue.remove_at(len(dialogue) - 1)
                continue
            print()


def main():
    logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    try:
        asyncio.run(chat())
    except KeyboardInterrupt:
        print()
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
