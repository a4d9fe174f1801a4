"""Request/response interceptor pipeline.

* :mod:`~ghstubs.pipeline.chain` -- :class:`Interceptor`, :class:`Chain`,
  :class:`InterceptorChain` and :class:`InterceptorTransport`.
* :mod:`~ghstubs.pipeline.interceptors` -- the concrete stages.
* :mod:`~ghstubs.pipeline.assembler` -- :class:`PipelineAssembler`, which
  picks and orders the stages for one stub configuration.
"""

from ghstubs.pipeline.assembler import PipelineAssembler
from ghstubs.pipeline.chain import Chain, Interceptor, InterceptorChain, InterceptorTransport
from ghstubs.pipeline.interceptors import page_links

__all__ = [
    "Chain",
    "Interceptor",
    "InterceptorChain",
    "InterceptorTransport",
    "PipelineAssembler",
    "page_links",
]
