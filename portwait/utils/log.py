import json
import logging
import datetime
import os
import sys


class StructuredLogger:
    
    def __init__(self, logger_name='StructuredLogger', level='INFO'):
        self.logger = logging.getLogger(logger_name)
        self.set_level(level)
        
        # stdout is reserved for the human-readable status lines
        if not any(getattr(h, '_structured', False) for h in self.logger.handlers):
            handler = logging.StreamHandler(sys.stderr)
            handler._structured = True
            formatter = logging.Formatter('%(message)s')
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        
    
    def set_level(self, level):
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
        self.logger.setLevel(level)
    
    def _log(self, level, message, **kwargs):
        if not self.logger.isEnabledFor(getattr(logging, level.upper())):
            return
        log_entry = {
            'timestamp': datetime.datetime.now().isoformat(),
            'level': level.upper(),
            'message': message,
            **kwargs
        }
        json_log = json.dumps(log_entry, default=str)
        getattr(self.logger, level)(json_log) # Invoke the method corresponding to the level
    
    def flush(self):
        for handler in self.logger.handlers:
            handler.flush()
            
    
    def info(self, message, **kwargs):
        self._log('info', message, **kwargs)
        
    def warning(self, message, **kwargs):
        self._log('warning', message, **kwargs)
        
    def error(self, message, **kwargs):
        self._log('error', message, **kwargs)
        
    def debug(self, message, **kwargs):
        self._log('debug', message, **kwargs)
        
app_logger = StructuredLogger('PortwaitLogger', level=os.getenv('LOG_LEVEL', 'INFO'))
