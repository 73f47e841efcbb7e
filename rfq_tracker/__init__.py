"""PCB RFQ Tracker — quote tracking API for the sales team."""
