"""
Kitchen Ledger Test Suite

Tests are organized by service:
- test_stock_ledger.py: FIFO deduction, additions, costing
- test_prep_tasks.py: prep task state machine and production
- test_order_service.py: order placement
- test_waste_service.py / test_buffet_service.py: waste and pan accounting
"""
