"""
Main CLI entry point for pcap-tree tool.

This module provides the command-line interface for inspecting packet capture files.
"""

import click
import asyncio
import logging
import sys
import json

from .packet_parser import PacketParser, CaptureLoadError, is_valid_pcap_file
from .navigation import flatten
from .hexdump import render

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@click.command()
@click.argument('capture_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--export', '-e', type=click.Choice(['txt', 'json']),
              help='Export decoded packet report to file')
@click.option('--no-tui', is_flag=True, help='Print the decoded tree without TUI interface')
@click.option('--fields', '-f', is_flag=True, help='Show per-field rows under each layer')
@click.option('--hex', 'show_hex', is_flag=True, help='Print a hex dump after each packet (with --no-tui)')
@click.option('--width', '-w', type=click.IntRange(min=12), default=80,
              help='Viewport width used for hex dumps')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def main(capture_file, export, no_tui, fields, show_hex, width, verbose):
    """
    Inspect a packet capture file as a tree of protocol layers.

    CAPTURE_FILE should be a valid pcap or pcapng file.

    Examples:
        pcap-tree capture.pcap
        pcap-tree --fields capture.pcap
        pcap-tree --no-tui --hex -w 100 capture.pcap
        pcap-tree --no-tui --export json capture.pcap
    """

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate input file
    if not is_valid_pcap_file(capture_file):
        click.echo(f"Error: {capture_file} is not a valid pcap file", err=True)
        sys.exit(1)

    # Load errors end the process before any UI is set up
    parser = PacketParser()
    try:
        capture = parser.parse_capture(capture_file)
    except CaptureLoadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if no_tui:
        print_capture(capture, fields, show_hex, width)
    elif not export:
        from .tui import run_tui
        asyncio.run(run_tui(capture, verbose=fields))

    if export:
        metadata = parser.extract_metadata(capture, capture_file)
        export_filename = f"pcap_tree_report.{export}"
        click.echo(f"Exporting results to {export_filename}...")

        try:
            export_report(capture, metadata, export_filename, export)
            click.echo(f"Report exported successfully to {export_filename}")
        except OSError as e:
            click.echo(f"Error exporting report: {e}", err=True)
            sys.exit(1)


def print_capture(capture, fields, show_hex, width):
    """
    Print every frame's fully expanded tree.

    Args:
        capture: Decoded capture
        fields: Include per-field rows
        show_hex: Print a hex dump after each frame
        width: Viewport width for the hex dump
    """
    open_set = set()
    for fi, frame in enumerate(capture.frames):
        open_set.add((fi,))
        open_set.update((fi, li) for li in range(len(frame.layers)))

    rows_by_frame = {}
    for row in flatten(capture, open_set, verbose=fields):
        rows_by_frame.setdefault(row.node_id[0], []).append(row)

    for fi, frame in enumerate(capture.frames):
        for row in rows_by_frame.get(fi, []):
            click.echo("  " * row.depth + row.label)
        if show_hex:
            click.echo(render(frame.byte_buffer, width))
            click.echo("")


def export_report(capture, metadata, filename, format_type):
    """
    Export decoded capture to file.

    Args:
        capture: Decoded capture
        metadata: CaptureMetadata for the file
        filename: Output filename
        format_type: Export format (txt, json)
    """
    if format_type == 'txt':
        export_text_report(capture, metadata, filename)
    elif format_type == 'json':
        export_json_report(capture, metadata, filename)
    else:
        raise ValueError(f"Unsupported export format: {format_type}")


def export_text_report(capture, metadata, filename):
    """Export the decoded tree as plain text report."""
    with open(filename, 'w') as f:
        f.write("PCAP TREE REPORT\n")
        f.write("="*50 + "\n\n")
        f.write(f"File: {metadata.get_summary()}\n")
        f.write(f"Protocols: {', '.join(metadata.protocols)}\n\n")

        for frame in capture.frames:
            f.write(f"{frame.get_summary()}\n")
            for layer in frame.layers:
                f.write(f"  {layer.summary()}\n")
                for name, value in layer.fields():
                    f.write(f"    {name}: {value}\n")


def export_json_report(capture, metadata, filename):
    """Export the decoded tree as JSON report."""
    json_data = {
        'metadata': {
            'filename': metadata.filename,
            'packet_count': metadata.packet_count,
            'total_bytes': metadata.total_bytes,
            'file_size': metadata.file_size,
            'protocols': metadata.protocols,
            'duration': metadata.get_duration_str()
        },
        'packets': []
    }

    for frame in capture.frames:
        json_data['packets'].append({
            'index': frame.index,
            'length': len(frame.byte_buffer),
            'link_type': frame.link_type,
            'timestamp': frame.timestamp,
            'layers': [
                {
                    'name': layer.name,
                    'offset': layer.offset,
                    'length': layer.length,
                    'summary': layer.summary(),
                    'fields': dict(layer.fields()),
                }
                for layer in frame.layers
            ],
        })

    with open(filename, 'w') as f:
        json.dump(json_data, f, indent=2)


if __name__ == "__main__":
    main()
