#!/usr/bin/env python3
"""
Quick Start Guide for the XML Stream Indexer.

This example walks through parsing an AUTOSAR document, searching and
filtering the element tree and exporting a selection.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from xml_stream_indexer import IndexerConfig, ParseOptions, StreamParserEngine
from xml_stream_indexer.query import FilterType, TreeFilter

SAMPLE_ARXML = """<?xml version="1.0" encoding="UTF-8"?>
<AUTOSAR>
  <AR-PACKAGES>
    <AR-PACKAGE>
      <SHORT-NAME>Powertrain</SHORT-NAME>
      <ELEMENTS>
        <APPLICATION-SW-COMPONENT-TYPE>
          <SHORT-NAME>EngineController</SHORT-NAME>
          <P-PORT-PROTOTYPE>
            <SHORT-NAME>TorqueOut</SHORT-NAME>
            <PROVIDED-INTERFACE-TREF DEST="SENDER-RECEIVER-INTERFACE">/Interfaces/Torque</PROVIDED-INTERFACE-TREF>
          </P-PORT-PROTOTYPE>
        </APPLICATION-SW-COMPONENT-TYPE>
        <SENDER-RECEIVER-INTERFACE>
          <SHORT-NAME>Torque</SHORT-NAME>
        </SENDER-RECEIVER-INTERFACE>
      </ELEMENTS>
    </AR-PACKAGE>
  </AR-PACKAGES>
</AUTOSAR>
"""


def quick_start_example():
    """Quick start example showing basic usage."""

    print("🚀 QUICK START - XML Stream Indexer")
    print("=" * 40)

    # Step 1: Parse the document
    print("\n📄 Step 1: Parsing")
    print("-" * 30)

    engine = StreamParserEngine(IndexerConfig.arxml())
    state = engine.parse_file(
        SAMPLE_ARXML,
        ParseOptions(validate_schema=False),
        on_progress=lambda s: print(f"  {s.progress:5.1f}% {s.current_section}"),
    )

    print(f"✅ Status: {state.status.value}")
    print(f"📊 Retained elements: {len(engine.get_elements())}")
    for element in engine.get_elements():
        print(f"  {'  ' * element.depth}{element.name} [{element.type}]")

    # Step 2: Search
    print("\n🔍 Step 2: Ranked search")
    print("-" * 30)

    for result in engine.search_elements("torque"):
        print(f"  {result.score:>4}  {result.element.name}  {result.element.path}")

    # Step 3: Filter
    print("\n🧹 Step 3: Filtering")
    print("-" * 30)

    components = engine.filter_elements(
        engine.get_elements(),
        [TreeFilter(FilterType.ELEMENT_TYPE, "APPLICATION-SW-COMPONENT-TYPE")],
    )
    print(f"  Components: {[element.name for element in components]}")

    # Step 4: Export
    print("\n📦 Step 4: Export")
    print("-" * 30)

    ids = [element.id for element in engine.get_elements()]
    payload = engine.export_elements(ids, {"format": "csv"})
    print(payload.text())

    metrics = engine.get_metrics()
    print(f"\n⏱️  Parse time: {metrics.parse_time:.2f} ms, "
          f"index size: {metrics.search_index_size} bytes")


if __name__ == "__main__":
    quick_start_example()
