"""Matchers that identify which function produced a log entry."""

OAI_COMPLETE = "github.com/jlewi/foyle/app/pkg/oai.(*Completer).Complete"
ANTHROPIC_COMPLETE = "github.com/jlewi/foyle/app/pkg/anthropic.(*Completer).Complete"
LOG_EVENTS = "github.com/jlewi/foyle/app/pkg/agent.(*Agent).LogEvents"
STREAM_GENERATE = "github.com/jlewi/foyle/app/pkg/agent.(*Agent).StreamGenerate"
LLM_USAGE = "github.com/jlewi/foyle/app/pkg/logs.LogLLMUsage"
GENERATE = "github.com/jlewi/foyle/app/pkg/agent.(*Agent).Generate"

REQUEST_FIELD = "request"
# Field storing the response of the LLM.
RESPONSE_FIELD = "resp"


def is_oai_complete(name: str) -> bool:
    return name.startswith(OAI_COMPLETE)


def is_anthropic_complete(name: str) -> bool:
    return name.startswith(ANTHROPIC_COMPLETE)


def is_log_event(fname: str) -> bool:
    # Prefix match: the log call may sit in a nested anonymous function.
    return fname.startswith(LOG_EVENTS)


def is_llm_usage(fname: str) -> bool:
    return fname.startswith(LLM_USAGE)


def is_generate(fname: str) -> bool:
    return fname.startswith(GENERATE)


def is_stream_generate(fname: str) -> bool:
    return fname.startswith(STREAM_GENERATE)