from crawl_service.main import run

run()
