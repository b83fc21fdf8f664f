MONGO_AUTHENTICATION_DB = "MONGO_AUTHENTICATION_DB"
DEBUG_HTTPCLIENT = "DEBUG_HTTPCLIENT"
DEBUG_HTTPCLIENT_BODY = "DEBUG_HTTPCLIENT_BODY"

CONTENT_TYPE = "Content-Type"
TEXT_PLAIN = "text/plain"
APPLICATION_JSON = "application/json"
APPLICATION_X_WWW_FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART_FORM_DATA = "multipart/form-data"
