"""carrierkit: a carrier-agnostic adapter core for logistics carrier APIs.

Adapters declare the operations they support as capabilities, report
failures as categorized CarrierErrors, and return batch results through
one aggregator. An auth fallback wrapper handles gateways that want an
exchanged token instead of the primary credentials.
"""

__version__ = "0.1.0"
