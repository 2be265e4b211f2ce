"""Allow running mailreport as a module: python -m mailreport."""

from mailreport.cli import main

if __name__ == "__main__":
    main()
