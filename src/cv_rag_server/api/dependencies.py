from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from ..agent.config import AgentConfig
from ..agent.cv_agent import CVAgent
from ..config import Settings, settings
from ..db import PgVectorStore, get_session_factory
from ..embeddings.embedder import Embedder
from ..llm.client import LLMClient


def require_configuration() -> Settings:
    """
    Fail fast with ConfigurationError before any provider or database call.
    """
    settings.require_credentials()
    return settings


@lru_cache
def get_agent_config() -> AgentConfig:
    return AgentConfig.from_settings(settings)


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient()


@lru_cache
def get_embedder() -> Embedder:
    return Embedder(model=get_agent_config().embedding_model_id)


@lru_cache
def get_vector_store() -> PgVectorStore:
    return PgVectorStore(get_session_factory())


def get_agent(
    _: Annotated[Settings, Depends(require_configuration)],
    llm: Annotated[LLMClient, Depends(get_llm_client)],
    embedder: Annotated[Embedder, Depends(get_embedder)],
    vector_store: Annotated[PgVectorStore, Depends(get_vector_store)],
    config: Annotated[AgentConfig, Depends(get_agent_config)],
) -> CVAgent:
    return CVAgent(
        llm=llm,
        embedder=embedder,
        vector_store=vector_store,
        config=config,
    )
