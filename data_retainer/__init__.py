"""
data_retainer
=============

• Watches the `live:fills` Redis list written by *decision_service*.
• Pops every queued fill marker and appends it to
      history/fills/fill_log.csv
"""
