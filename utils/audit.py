import json
import time
import logging
from decimal import Decimal
from typing import Dict


class LedgerAuditLogger:
    """
    Audit logging for ledger events (vendor and payment mutations)
    """

    def __init__(self):
        self.audit_logger = logging.getLogger('ledger_audit')

    def log_event(self, event_type: str, vendor_id: int = None,
                  details: Dict = None, severity: str = 'INFO') -> Dict:
        """
        Log a ledger event and return the audit record
        """
        audit_data = {
            'event_type': event_type,
            'vendor_id': vendor_id,
            'timestamp': time.time(),
            'details': details or {},
            'severity': severity
        }

        log_message = f"LEDGER_EVENT: {event_type} | Vendor: {vendor_id} | Details: {json.dumps(details, default=str)}"

        if severity == 'ERROR':
            self.audit_logger.error(log_message)
        elif severity == 'WARNING':
            self.audit_logger.warning(log_message)
        else:
            self.audit_logger.info(log_message)

        return audit_data

    def log_payment_attempt(self, vendor_id: int, operation: str,
                            amount: Decimal, success: bool, error_msg: str = None) -> Dict:
        """
        Log a payment add/update/delete attempt
        """
        details = {
            'operation': operation,
            'amount': str(amount),
            'success': success,
            'error_message': error_msg
        }

        severity = 'INFO' if success else 'WARNING'
        return self.log_event('PAYMENT_ATTEMPT', vendor_id, details, severity)
